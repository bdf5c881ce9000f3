import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response

from config import get_settings
from filters import FilterCriteria
from models import TransactionType
from records import ValidationError
from reports import round_money
from schemas import TransactionIn
from services import ReportService, TransactionService
from storage import (
    AuthorizationFailed,
    CollaboratorFailure,
    Identity,
    TransactionNotFound,
    TransactionStore,
    get_store,
)

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="FinEase Reports")


def _load_app_version() -> str:
    try:
        import tomllib
    except Exception:
        return "unknown"
    try:
        with open("pyproject.toml", "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except Exception:
        return "unknown"


APP_VERSION = _load_app_version()


@app.exception_handler(CollaboratorFailure)
def collaborator_failure_handler(request: Request, exc: CollaboratorFailure):
    logger.warning(f"collaborator_failure: path={request.url.path} error={exc}")
    if isinstance(exc, AuthorizationFailed):
        return JSONResponse(status_code=401, content={"detail": "Not authorized"})
    if isinstance(exc, TransactionNotFound):
        return JSONResponse(status_code=404, content={"detail": "Transaction not found"})
    return JSONResponse(status_code=503, content={"detail": "Data unavailable, retry"})


@app.exception_handler(ValidationError)
def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400, content={"detail": exc.message, "field": exc.field}
    )


def current_identity(
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Identity:
    email = (x_user_email or "").strip()
    if not email:
        raise HTTPException(status_code=401, detail="Please log in first")
    return Identity(email=email, display_name=(x_user_name or "").strip() or None)


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return token.strip()


def criteria_from_request(request: Request) -> FilterCriteria:
    month_param = (request.query_params.get("month") or "").strip()
    category_param = request.query_params.get("category") or ""
    type_param = (request.query_params.get("type") or "").strip()
    month = None
    if month_param:
        try:
            month = int(month_param)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid month") from exc
    txn_type = TransactionType.parse(type_param) if type_param else None
    try:
        return FilterCriteria(
            month=month,
            category=category_param or None,
            transaction_type=txn_type,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def report_service(
    store: TransactionStore = Depends(get_store),
    identity: Identity = Depends(current_identity),
    token: Optional[str] = Depends(bearer_token),
) -> ReportService:
    return ReportService(store, identity, token)


def transaction_service(
    store: TransactionStore = Depends(get_store),
    identity: Identity = Depends(current_identity),
    token: Optional[str] = Depends(bearer_token),
) -> TransactionService:
    return TransactionService(store, identity, token)


@app.get("/api/health")
def api_health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/api/overview")
def api_overview(service: ReportService = Depends(report_service)):
    return service.overview()


@app.get("/api/reports")
def api_reports(request: Request, service: ReportService = Depends(report_service)):
    criteria = criteria_from_request(request)
    return service.report(criteria)


@app.get("/api/reports/export.csv")
def api_reports_export(
    request: Request, service: ReportService = Depends(report_service)
):
    criteria = criteria_from_request(request)
    content = service.export_csv(criteria)
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=report.csv"},
    )


@app.get("/api/transactions")
def api_transactions(request: Request, service: ReportService = Depends(report_service)):
    criteria = criteria_from_request(request)
    records = service.filtered(criteria)
    return {"items": [record.to_dict() for record in records], "count": len(records)}


@app.get("/api/transactions/{transaction_id}")
def api_transaction_detail(
    transaction_id: str, service: TransactionService = Depends(transaction_service)
):
    return service.detail(transaction_id)


@app.get("/api/category-total")
def api_category_total(
    category: str,
    txn_type: Optional[str] = Query(default=None, alias="type"),
    service: ReportService = Depends(report_service),
):
    transaction_type = TransactionType.parse(txn_type) if txn_type else None
    total = service.category_total(category, transaction_type)
    return {"category": category, "total_amount": round_money(total)}


@app.get("/api/categories")
def api_categories(
    txn_type: Optional[str] = Query(default=None, alias="type"),
    service: ReportService = Depends(report_service),
):
    transaction_type = TransactionType.parse(txn_type) if txn_type else None
    return {
        "type": transaction_type.value if transaction_type else None,
        "categories": service.categories(transaction_type),
    }


@app.post("/api/transactions", status_code=201)
def api_create_transaction(
    data: TransactionIn, service: TransactionService = Depends(transaction_service)
):
    record = service.create(data)
    return record.to_dict()


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
