from __future__ import annotations

import http.client
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from config import get_settings
from database import get_session_factory, session_scope
from models import Transaction

logger = logging.getLogger(__name__)


class CollaboratorFailure(RuntimeError):
    pass


class StorageUnavailable(CollaboratorFailure):
    pass


class AuthorizationFailed(CollaboratorFailure):
    pass


class TransactionNotFound(CollaboratorFailure):
    pass


@dataclass(frozen=True)
class Identity:
    email: str
    display_name: Optional[str] = None


class TransactionStore(Protocol):
    def fetch_transactions(
        self, owner_email: str, auth_token: Optional[str]
    ) -> list[dict]:  # pragma: no cover - interface
        ...

    def fetch_transaction(
        self, transaction_id: str, auth_token: Optional[str]
    ) -> dict:  # pragma: no cover - interface
        ...

    def add_transaction(
        self, payload: dict, auth_token: Optional[str]
    ) -> dict:  # pragma: no cover - interface
        ...


def _json_default(value: object) -> object:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Unserializable value: {type(value).__name__}")


class HttpTransactionStore:
    def __init__(self, base_url: str, *, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        auth_token: Optional[str],
        body: Optional[dict] = None,
    ) -> object:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(body, default=_json_default).encode("utf-8")
        req = Request(url, data=data, headers=headers, method=method)
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            logger.warning(
                f"storage_http_error: method={method} path={path} status={exc.code}"
            )
            if exc.code in (401, 403):
                raise AuthorizationFailed("Storage rejected the credentials") from exc
            if exc.code == 404:
                raise TransactionNotFound(f"Not found: {path}") from exc
            raise StorageUnavailable(
                f"Storage responded with status {exc.code}"
            ) from exc
        except (
            URLError,
            OSError,
            http.client.HTTPException,
            UnicodeDecodeError,
            json.JSONDecodeError,
        ) as exc:
            logger.warning(
                f"storage_unreachable: method={method} path={path} error={exc}"
            )
            raise StorageUnavailable("Failed to reach transaction storage") from exc

    def fetch_transactions(
        self, owner_email: str, auth_token: Optional[str]
    ) -> list[dict]:
        payload = self._request(
            "GET", f"/transactions?{urlencode({'email': owner_email})}", auth_token
        )
        if not isinstance(payload, list):
            raise StorageUnavailable("Unexpected storage response")
        return [item for item in payload if isinstance(item, dict)]

    def fetch_transaction(self, transaction_id: str, auth_token: Optional[str]) -> dict:
        payload = self._request(
            "GET", f"/transactions/{quote(str(transaction_id), safe='')}", auth_token
        )
        if not payload:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        if not isinstance(payload, dict):
            raise StorageUnavailable("Unexpected storage response")
        return payload

    def add_transaction(self, payload: dict, auth_token: Optional[str]) -> dict:
        result = self._request("POST", "/transactions", auth_token, body=payload)
        stored = dict(payload)
        if isinstance(result, dict):
            inserted_id = result.get("insertedId") or result.get("_id")
            if inserted_id is not None:
                stored["_id"] = str(inserted_id)
        return stored


def _row_to_raw(txn: Transaction) -> dict:
    return {
        "_id": str(txn.id),
        "type": txn.type,
        "category": txn.category,
        "amount": txn.amount,
        "date": txn.date,
        "description": txn.description,
        "user_email": txn.user_email,
        "user_name": txn.user_name,
        "created_at": txn.created_at,
    }


class SqlTransactionStore:
    """Local storage backend; ``auth_token`` is accepted and ignored."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def fetch_transactions(
        self, owner_email: str, auth_token: Optional[str]
    ) -> list[dict]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_email == owner_email)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        with self.session_factory() as session:
            return [_row_to_raw(txn) for txn in session.scalars(stmt).all()]

    def fetch_transaction(self, transaction_id: str, auth_token: Optional[str]) -> dict:
        try:
            pk = int(transaction_id)
        except (TypeError, ValueError) as exc:
            raise TransactionNotFound(f"Transaction {transaction_id} not found") from exc
        with self.session_factory() as session:
            txn = session.get(Transaction, pk)
            if txn is None:
                raise TransactionNotFound(f"Transaction {transaction_id} not found")
            return _row_to_raw(txn)

    def add_transaction(self, payload: dict, auth_token: Optional[str]) -> dict:
        with session_scope(self.session_factory) as session:
            txn = Transaction(
                user_email=payload["user_email"],
                user_name=payload.get("user_name"),
                type=payload["type"],
                category=payload["category"],
                amount=Decimal(str(payload["amount"])),
                date=payload["date"],
                description=payload.get("description"),
                created_at=payload.get("created_at") or datetime.utcnow(),
            )
            session.add(txn)
            session.flush()
            session.refresh(txn)
            return _row_to_raw(txn)


def get_store() -> TransactionStore:
    settings = get_settings()
    if settings.storage_backend == "sql":
        return SqlTransactionStore(get_session_factory())
    if settings.storage_backend != "http":
        raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")
    return HttpTransactionStore(
        settings.storage_url, timeout=settings.storage_timeout_secs
    )
