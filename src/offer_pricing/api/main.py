"""
Offer Pricing API - stateless HTTP surface over the pricing engine.

Every endpoint takes the full item or offer export and returns a new one;
nothing is stored between requests.
"""
import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .. import __version__
from ..config.settings import configure_logging, get_settings
from ..engine import LineItem, Offer, get_unit_table
from ..exceptions import ValidationError
from .schemas import BulkRequest, ItemConfigIn, ItemUpdateRequest, OfferOut, OfferRequest

configure_logging()
log = logging.getLogger("offer_pricing.api")

app = FastAPI(
    title="Offer Pricing API",
    description="Line item resolution and offer totals",
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

# Bulk operations taking a value, and those taking a rounding step
VALUE_OPERATIONS = {
    'set_margin', 'set_gross', 'set_discount', 'set_quantity',
    'set_vat_rate', 'set_glass_price', 'set_unit',
}
STEP_OPERATIONS = {'round_customer_prices', 'round_glass_prices'}


def _load_offer(payload: dict) -> Offer:
    try:
        return Offer.from_dict(payload, units=get_unit_table())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/")
async def root():
    return {"status": "online", "message": "Offer Pricing API Active"}


@app.get("/units")
async def get_units():
    return get_unit_table().to_dict()


@app.get("/system/status")
async def get_status():
    settings = get_settings()
    return {
        "engine_active": True,
        "version": __version__,
        "default_unit": settings.default_unit,
        "default_vat_rate": settings.default_vat_rate,
        "units_csv": str(settings.units_csv) if settings.units_csv else None,
        "units_count": len(get_unit_table().symbols()),
    }


@app.post("/items/resolve")
async def resolve_item(config: ItemConfigIn):
    try:
        item = LineItem.from_config(config.to_config(), units=get_unit_table())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return item.to_dict()


@app.post("/items/update")
async def update_item(req: ItemUpdateRequest):
    units = get_unit_table()
    try:
        item = LineItem.from_dict(req.item, units=units)
        updated = item.update(req.changes, units=units)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return updated.to_dict()


@app.post("/offers/calculate", response_model=OfferOut)
async def calculate_offer(req: OfferRequest):
    try:
        offer = Offer.create(
            [item.to_config() for item in req.items],
            units=get_unit_table(),
            id=req.id,
            title=req.title,
            menu=req.menu,
            data=req.data,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    log.info("Priced offer %s with %d item(s)", offer.id, len(offer.items))
    return offer.to_dict()


@app.post("/offers/bulk", response_model=OfferOut)
async def bulk_update(req: BulkRequest):
    offer = _load_offer(req.offer)
    try:
        if req.operation in VALUE_OPERATIONS:
            offer = getattr(offer, req.operation)(req.value, req.ids)
        elif req.operation in STEP_OPERATIONS:
            offer = getattr(offer, req.operation)(req.step, req.ids)
        elif req.operation == 'remove_items':
            offer = offer.remove_items(req.ids or [])
        else:
            raise HTTPException(status_code=400, detail=f"Unknown bulk operation '{req.operation}'")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return offer.to_dict()


@app.post("/offers/export.csv", response_class=PlainTextResponse)
async def export_offer_csv(payload: dict):
    offer = _load_offer(payload)
    return PlainTextResponse(offer.to_frame().to_csv(index=False), media_type="text/csv")
