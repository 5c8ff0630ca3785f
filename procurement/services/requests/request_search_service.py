"""
Request Search Service

Read-only listing and search of request items for dashboards. Visibility is
scoped by role; ordering of search hits follows match quality.
"""

from __future__ import annotations

import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import or_

from procurement.buisness.core.actor import Actor, MANAGER, PURCHASE_OFFICER, SITE_ENGINEER
from procurement.buisness.workflow.request_group import RequestGroup
from procurement.buisness.workflow.state_machine import RequestStateMachine
from procurement.data.requests.request_item import RequestItem
from procurement.logger import get_logger

logger = get_logger("procurement.services.requests.search")

# Match ranks, best first
RANK_REQUEST_NUMBER = 0
RANK_ITEM_ORDER = 1
RANK_EXACT_FIELD = 2
RANK_SUBSTRING = 3
RANK_FUZZY = 4

SHORT_TERM_LENGTH = 3
FUZZY_MIN_LENGTH = 5

# Statuses a purchase officer has nothing to do with
NOT_PURCHASE_RELEVANT = {RequestStateMachine.DRAFT, RequestStateMachine.PENDING, RequestStateMachine.REJECTED}

_WORD_RE = re.compile(r'[a-z0-9]+')


def _default_fields(item: RequestItem) -> list[str]:
    fields = [item.item_name, item.description, item.specs_brand, item.unit, item.status]
    if item.site is not None:
        fields.append(item.site.name)
    if item.created_by is not None:
        fields.append(item.created_by.full_name)
    return [f for f in fields if f]


def _within_one_edit(a: str, b: str) -> bool:
    """True when a and b differ by at most one insertion, deletion or substitution"""
    if abs(len(a) - len(b)) > 1:
        return False
    if len(a) > len(b):
        a, b = b, a
    i = j = 0
    edits = 0
    while i < len(a) and j < len(b):
        if a[i] == b[j]:
            i += 1
            j += 1
            continue
        edits += 1
        if edits > 1:
            return False
        if len(a) == len(b):
            i += 1
        j += 1
    return edits + (len(b) - j) + (len(a) - i) <= 1


def _strip_request_prefix(term: str) -> str:
    return term[4:] if term.lower().startswith('req-') else term


def match_rank(item: RequestItem, term: str,
               fields: Callable[[RequestItem], list[str]] = _default_fields) -> Optional[int]:
    """
    Rank how well item matches term; None when it does not match.

    Order: request number (with or without REQ-), item order, exact field,
    substring (short terms only on word boundaries), one-edit fuzzy match for
    terms longer than four characters.
    """
    term = term.strip().lower()
    if not term:
        return None

    number_term = _strip_request_prefix(term)
    number = item.request_number.lower()
    if number_term == number or (
        number_term.isdigit() and number.isdigit() and int(number_term) == int(number)
    ):
        return RANK_REQUEST_NUMBER

    if term.isdigit() and int(term) == item.item_order:
        return RANK_ITEM_ORDER

    values = [v.lower() for v in fields(item)]
    if any(v == term for v in values):
        return RANK_EXACT_FIELD

    words = [w for v in values for w in _WORD_RE.findall(v)]
    if len(term) <= SHORT_TERM_LENGTH:
        if any(w == term or w.startswith(term) for w in words):
            return RANK_SUBSTRING
        return None
    if any(term in v for v in values):
        return RANK_SUBSTRING

    if len(term) >= FUZZY_MIN_LENGTH and any(_within_one_edit(term, w) for w in words):
        return RANK_FUZZY
    return None


def fuzzy_search(items: Iterable[RequestItem], term: Optional[str]) -> list[RequestItem]:
    """Filter items by term and order them by match rank; ties keep their input order"""
    items = list(items)
    if not term or not term.strip():
        return items
    ranked = []
    for position, item in enumerate(items):
        rank = match_rank(item, term)
        if rank is not None:
            ranked.append((rank, position, item))
    ranked.sort(key=lambda entry: (entry[0], entry[1]))
    return [item for _, _, item in ranked]


@dataclass(frozen=True)
class RequestFilters:
    status: Optional[str] = None
    site_id: Optional[int] = None
    is_urgent: Optional[bool] = None
    search_term: Optional[str] = None


class RequestSearchService:
    """Role-scoped listing of request items and groups."""

    @staticmethod
    def parse_filters(args: Any) -> RequestFilters:
        """
        Parse filter args from a Flask `request.args`-like mapping.
        """
        site_id = args.get("site_id")
        urgent = args.get("is_urgent")
        status = args.get("status") or None
        return RequestFilters(
            status=RequestStateMachine.normalize(status) if status else None,
            site_id=int(site_id) if site_id and str(site_id).isdigit() else None,
            is_urgent=None if urgent in (None, "") else str(urgent).lower() in ("1", "true", "yes"),
            search_term=(args.get("search") or args.get("q") or "").strip() or None,
        )

    @staticmethod
    def visible_query(actor: Actor):
        """
        Items the actor may see.

        - site engineers: their own requests
        - purchase officers: purchase-relevant items plus their own drafts
        - managers and admins: everything except other users' drafts
        """
        query = RequestItem.query
        if actor.role == SITE_ENGINEER:
            return query.filter(RequestItem.created_by_id == actor.user_id)
        own_draft = (RequestItem.status == RequestStateMachine.DRAFT) & (RequestItem.created_by_id == actor.user_id)
        if actor.role == PURCHASE_OFFICER:
            return query.filter(or_(RequestItem.status.notin_(sorted(NOT_PURCHASE_RELEVANT)), own_draft))
        if actor.has_role(MANAGER):
            return query.filter(or_(RequestItem.status != RequestStateMachine.DRAFT, own_draft))
        return query.filter(RequestItem.id.is_(None))

    @classmethod
    def list_items(cls, actor: Actor, filters: Optional[RequestFilters] = None) -> list[RequestItem]:
        filters = filters or RequestFilters()
        query = cls.visible_query(actor)
        if filters.status:
            query = query.filter(RequestItem.status == filters.status)
        if filters.site_id:
            query = query.filter(RequestItem.site_id == filters.site_id)
        if filters.is_urgent is not None:
            query = query.filter(RequestItem.is_urgent.is_(filters.is_urgent))
        items = query.order_by(RequestItem.created_at.desc(), RequestItem.request_number,
                               RequestItem.item_order).all()
        items = fuzzy_search(items, filters.search_term)
        logger.debug(f"Listed {len(items)} item(s) for {actor.role} {actor.user_id}")
        return items

    @classmethod
    def list_groups(cls, actor: Actor, filters: Optional[RequestFilters] = None) -> list[RequestGroup]:
        """Group visible items by request number, keeping the listing order of each group's first hit"""
        grouped: "OrderedDict[str, list[RequestItem]]" = OrderedDict()
        for item in cls.list_items(actor, filters):
            grouped.setdefault(item.request_number, []).append(item)
        return [
            RequestGroup(number, sorted(items, key=lambda i: i.item_order))
            for number, items in grouped.items()
        ]
