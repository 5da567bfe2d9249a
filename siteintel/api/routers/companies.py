"""Canonical company registry endpoints.

Routes
------
GET /companies                        All canonical records, most recently updated first
GET /companies/lookup?name=           Resolve a name (exact, then alias) to one record
GET /companies/{id}                   One canonical record
GET /companies/{id}/graph             Latest knowledge graph (``?version=`` for an older one)
GET /companies/{id}/graph/versions    Available graph versions
GET /companies/{id}/graph/search?q=   Substring search over the latest graph's nodes
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from siteintel.db.companies import (
    find_company,
    get_company,
    get_graph,
    list_companies,
    list_graph_versions,
    search_company_graph,
)
from siteintel.db.models import CanonicalCompanyRecord

router = APIRouter()


def _require_company(request: Request, company_id: str) -> CanonicalCompanyRecord:
    record = get_company(request.app.state.db, company_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Company '{company_id}' not found.")
    return record


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[dict[str, Any]])
def list_companies_endpoint(request: Request) -> list[dict[str, Any]]:
    return [c.to_dict() for c in list_companies(request.app.state.db)]


@router.get("/lookup", response_model=dict[str, Any])
def lookup_company_endpoint(request: Request, name: str = Query(min_length=1)) -> dict[str, Any]:
    """Resolve *name* through normalized names and aliases."""
    record = find_company(request.app.state.db, name)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No company matches '{name}'.")
    return record.to_dict()


@router.get("/{company_id}", response_model=dict[str, Any])
def get_company_endpoint(company_id: str, request: Request) -> dict[str, Any]:
    return _require_company(request, company_id).to_dict()


@router.get("/{company_id}/graph", response_model=dict[str, Any])
def get_graph_endpoint(
    company_id: str,
    request: Request,
    version: Optional[int] = Query(default=None, ge=1),
) -> dict[str, Any]:
    """Return one knowledge-graph version (the latest by default)."""
    _require_company(request, company_id)
    stored = get_graph(request.app.state.db, company_id, version)
    if stored is None:
        label = f"version {version}" if version is not None else "graph"
        raise HTTPException(status_code=404, detail=f"No {label} for company '{company_id}'.")
    return asdict(stored)


@router.get("/{company_id}/graph/versions", response_model=list[int])
def list_graph_versions_endpoint(company_id: str, request: Request) -> list[int]:
    _require_company(request, company_id)
    return list_graph_versions(request.app.state.db, company_id)


@router.get("/{company_id}/graph/search", response_model=list[dict[str, Any]])
def search_graph_endpoint(
    company_id: str,
    request: Request,
    q: str = Query(min_length=1),
) -> list[dict[str, Any]]:
    _require_company(request, company_id)
    return [asdict(n) for n in search_company_graph(request.app.state.db, company_id, q)]
