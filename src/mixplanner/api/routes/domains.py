"""
Domain metadata endpoints.
"""
from fastapi import APIRouter
from typing import List

from mixplanner.api.schemas import DomainSummarySchema, domain_to_schema
from mixplanner.model.domains import available_domains, resolve

router = APIRouter()


@router.get("/", response_model=List[DomainSummarySchema])
async def list_domains() -> List[DomainSummarySchema]:
    """All registered domains with their channels, metrics and defaults."""
    return [domain_to_schema(resolve(name)) for name in available_domains()]


@router.get("/{name}", response_model=DomainSummarySchema)
async def get_domain(name: str) -> DomainSummarySchema:
    """One domain. Unknown names are answered with 404."""
    return domain_to_schema(resolve(name))
