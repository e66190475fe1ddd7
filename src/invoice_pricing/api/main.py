import logging
from dataclasses import asdict
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from invoice_pricing import __version__
from invoice_pricing.engine import (
    DraftLine,
    PaymentMethodType,
    PricingAdjustments,
    PricingContractError,
    PricingResult,
)
from invoice_pricing.invoicing import (
    DraftInputError,
    ManualLine,
    PendingItem,
    build_draft_lines,
    generate_invoice_number,
    parse_due_date,
    resolve_adjustments,
)
from invoice_pricing.api.state import engine, settings

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Invoice Pricing API",
    description="Prices billing drafts for the client's payment method",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Discount lines are synthesized by the engine, never submitted
CallerLineType = Literal['base_subscription', 'usage', 'project', 'processing_fee']


class DraftLineIn(BaseModel):
    line_type: CallerLineType
    description: str
    quantity: float = Field(1, ge=0)
    unit_price_cents: int
    metadata: Optional[Dict[str, Any]] = None


class AdjustmentsIn(BaseModel):
    payment_method_type: PaymentMethodType
    auto_pay_enabled: bool = False
    ach_discount_cents: Optional[int] = None
    processing_fee_rate: Optional[float] = None
    processing_fee_fixed_cents: Optional[int] = None
    show_processing_fee_line: Optional[bool] = None


class PreviewRequest(BaseModel):
    lines: List[DraftLineIn]
    adjustments: AdjustmentsIn


class PendingItemIn(BaseModel):
    id: str
    unit_price_cents: Any = 0
    description: Optional[str] = None
    quantity: Any = None
    source_type: Optional[str] = None


class ManualLineIn(BaseModel):
    description: Optional[str] = None
    unit_price_cents: Any = 0
    quantity: Any = None


class DraftRequest(BaseModel):
    project_name: Optional[str] = None
    base_retainer_cents: Optional[int] = None
    include_retainer: bool = False
    pending_items: List[PendingItemIn] = []
    manual_lines: List[ManualLineIn] = []
    payment_method_type: Optional[str] = None
    auto_pay_enabled: bool = False
    ach_discount_cents: Optional[int] = None
    include_processing_fee: Optional[bool] = None
    collection_method: Literal['charge_automatically', 'send_invoice'] = 'charge_automatically'
    due_date: Optional[str] = None


def _result_payload(result: PricingResult) -> dict:
    payload = result.to_record_dict()
    payload["trace"] = [asdict(step) for step in result.trace]
    return jsonable_encoder(payload)


@app.get("/")
async def root():
    return {"status": "online", "message": "Invoice Pricing API Active", "version": __version__}


@app.get("/pricing/rules")
async def get_pricing_rules():
    return {
        "rules": engine.rules.to_dict(),
        "default_payment_method": settings.default_payment_method,
    }


@app.post("/invoices/preview")
async def preview_invoice(req: PreviewRequest):
    try:
        lines = [DraftLine(**line.model_dump()) for line in req.lines]
        adjustments = PricingAdjustments(**req.adjustments.model_dump())
        result = engine.calculate(lines, adjustments)
    except PricingContractError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _result_payload(result)


@app.post("/invoices/draft")
async def draft_invoice(req: DraftRequest):
    try:
        # A manually collected invoice must say when it is due
        if req.collection_method == 'send_invoice' and not req.due_date:
            raise DraftInputError(
                'dueDate (YYYY-MM-DD) is required when collectionMethod is "send_invoice".'
            )
        due_ymd, due_unix = parse_due_date(req.due_date)

        lines = build_draft_lines(
            pending_items=[PendingItem(**item.model_dump()) for item in req.pending_items],
            manual_lines=[ManualLine(**line.model_dump()) for line in req.manual_lines],
            project_name=req.project_name,
            base_retainer_cents=req.base_retainer_cents,
            include_retainer=req.include_retainer,
        )
        adjustments = resolve_adjustments(
            payment_method_type=req.payment_method_type,
            auto_pay_enabled=req.auto_pay_enabled,
            ach_discount_cents=req.ach_discount_cents,
            include_processing_fee=req.include_processing_fee,
            default_payment_method=settings.default_payment_method,
        )
        result = engine.calculate(lines, adjustments)
    except DraftInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PricingContractError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception:
        logger.exception("Unexpected failure while drafting invoice")
        raise HTTPException(status_code=500, detail="Unexpected server error.")

    return {
        "invoice_number": generate_invoice_number(prefix=settings.invoice_prefix),
        "collection_method": req.collection_method,
        "due_date": due_ymd,
        "due_date_unix": due_unix,
        "payment_method_type": adjustments.payment_method_type.value,
        "pricing": _result_payload(result),
    }
