"""Lead directory: record shape plus the pure filter and normalization rules."""

import re
import uuid
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

MAX_RESULTS = 500

_OPTIONAL_FIELDS = (
    "logoUrl",
    "sector",
    "size",
    "turnover",
    "city",
    "state",
    "website",
    "email",
    "phone",
)

_WHITESPACE = re.compile(r"\s+")


@dataclass
class Lead:
    id: str
    name: str
    logoUrl: str | None = None  # noqa: N815 - stored JSON keys are camelCase
    sector: str | None = None
    size: str | None = None  # SME | Mid | Large | Enterprise
    turnover: str | None = None
    city: str | None = None
    state: str | None = None
    website: str | None = None
    email: str | None = None
    phone: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Lead":
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            **{k: raw[k] for k in _OPTIONAL_FIELDS if isinstance(raw.get(k), str)},
        )

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def _contains(value: str | None, needle: str) -> bool:
    return needle in (value or "").lower()


def filter_leads(
    leads: Iterable[Lead],
    q: str | None = None,
    size: str | None = None,
    sector: str | None = None,
) -> list[Lead]:
    """Apply the directory filters; at most MAX_RESULTS are returned.

    q matches name, sector, city or state (substring); size is an exact match
    and sector a substring, both case-insensitive and skipped when "all".
    """
    q = (q or "").strip().lower()
    size = (size or "").strip().lower()
    sector = (sector or "").strip().lower()

    out = list(leads)
    if q:
        out = [
            lead
            for lead in out
            if any(_contains(v, q) for v in (lead.name, lead.sector, lead.city, lead.state))
        ]
    if size and size != "all":
        out = [lead for lead in out if (lead.size or "").lower() == size]
    if sector and sector != "all":
        out = [lead for lead in out if _contains(lead.sector, sector)]
    return out[:MAX_RESULTS]


def extract_lead_list(body: Any) -> list[Any] | None:
    """The lead array from a bare array or {"leads": [...]}; None otherwise."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get("leads"), list):
        return body["leads"]
    return None


def normalize_leads(raw_items: Iterable[Any]) -> list[Lead]:
    """Coerce raw items to Leads, dropping those without a non-empty name.

    id: given id, else the name lowercased with whitespace runs as '-',
    else a random uuid.
    """
    leads: list[Lead] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        name = raw.get("name").strip() if isinstance(raw.get("name"), str) else ""
        if not name:
            continue
        lead_id = str(raw.get("id") or "") or _WHITESPACE.sub("-", name.lower()) or str(uuid.uuid4())
        lead = Lead.from_dict(raw)
        lead.id = lead_id
        lead.name = name
        leads.append(lead)
    return leads
