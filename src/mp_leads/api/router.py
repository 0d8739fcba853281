"""Lead directory endpoints.

GET  /leads?q=&size=&sector=   — filtered directory (max 500)
POST /leads                    — bulk replace: [...] or {"leads": [...]}
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from config.settings import settings
from src.mp_common.errors import InvalidLeadsPayloadError
from src.mp_common.response import ApiResponse, success_response
from src.mp_leads.domain.models import extract_lead_list, filter_leads, normalize_leads
from src.mp_leads.infrastructure.file_store import LeadFileStore

router = APIRouter(prefix="/leads", tags=["leads"])


def get_lead_store() -> LeadFileStore:
    return LeadFileStore(settings.LEADS_FILE)


@router.get("")
async def list_leads(
    request: Request,
    store: Annotated[LeadFileStore, Depends(get_lead_store)],
    q: str | None = Query(None),
    size: str | None = Query(None),
    sector: str | None = Query(None),
) -> ApiResponse:
    leads = filter_leads(await store.read(), q=q, size=size, sector=sector)
    return success_response([lead.to_dict() for lead in leads], request)


@router.post("")
async def replace_leads(
    request: Request,
    store: Annotated[LeadFileStore, Depends(get_lead_store)],
) -> ApiResponse:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidLeadsPayloadError("Invalid JSON") from None

    raw_items = extract_lead_list(body)
    if raw_items is None:
        raise InvalidLeadsPayloadError("Expected an array of leads")

    leads = normalize_leads(raw_items)
    if not leads:
        raise InvalidLeadsPayloadError("No valid leads. Each lead requires a non-empty name.")

    await store.replace_all(leads)
    return success_response({"ok": True, "count": len(leads)}, request)
