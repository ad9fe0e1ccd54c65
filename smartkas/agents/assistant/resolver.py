"""
Entity Resolver

Maps a free-text product name from a validated action to exactly one catalog
entry.

Policy: case-insensitive containment of the (whitespace-collapsed) query in
each catalog name. One match resolves; zero matches raise EntityNotFound;
several matches raise AmbiguousEntity with every candidate, even when one of
them is an exact match ("Kopi" against "Kopi" and "Kopi Susu").
"""

import logging
from typing import List, Sequence

from smartkas.agents.assistant.errors import AmbiguousEntity, EntityNotFound
from smartkas.agents.assistant.types import ProductSnapshot

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    return " ".join(name.split()).casefold()


def find_candidates(name: str, catalog: Sequence[ProductSnapshot]) -> List[ProductSnapshot]:
    """Every catalog entry whose name contains `name`, in catalog order."""
    query = normalize_name(name)
    if not query:
        return []
    return [product for product in catalog if query in normalize_name(product.name)]


def resolve_product(name: str, catalog: Sequence[ProductSnapshot]) -> ProductSnapshot:
    """
    Resolve a product name against the turn's catalog.

    Raises:
        EntityNotFound: no catalog name contains the query
        AmbiguousEntity: more than one catalog name contains the query
    """
    matches = find_candidates(name, catalog)

    if not matches:
        logger.info(f"Product '{name}' not found in catalog of {len(catalog)}")
        raise EntityNotFound(name)

    if len(matches) > 1:
        logger.info(f"Product '{name}' is ambiguous: {len(matches)} candidates")
        raise AmbiguousEntity(name, [product.name for product in matches])

    return matches[0]


async def lookup_product(ledger, name: str) -> ProductSnapshot:
    """
    Same policy as resolve_product(), against a live ledger query.

    Used outside a chat turn (e.g. matching scanned stock-note rows) where no
    context snapshot exists.
    """
    rows = await ledger.find_products_by_name_substring(name)
    return resolve_product(name, [ProductSnapshot.from_row(row) for row in rows])
