from fastapi import APIRouter, Depends, Request

from crm.dependencies import get_current_organization_id, get_stores
from crm.rbac import require_permission
from crm.stores import StoreRegistry
from crm.utils import success_response
from .schemas import UpdateOrganizationRequest
from .service import OrganizationService

org_router = APIRouter()


@org_router.get("/current")
@require_permission("organization:read")
async def get_current_organization(
    request: Request,
    org_id: str = Depends(get_current_organization_id),
    stores: StoreRegistry = Depends(get_stores),
):
    svc = OrganizationService(stores.organizations)
    org = await svc.get_organization(org_id)
    return success_response(data={"organization": org.model_dump(by_alias=True, mode="json")})


@org_router.put("/current")
@require_permission("organization:update")
async def update_current_organization(
    request: Request,
    body: UpdateOrganizationRequest,
    org_id: str = Depends(get_current_organization_id),
    stores: StoreRegistry = Depends(get_stores),
):
    """Update name and/or settings of the caller's organization (admins only)."""
    svc = OrganizationService(stores.organizations)
    org = await svc.update_organization(
        org_id, body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return success_response(
        data={"organization": org.model_dump(by_alias=True, mode="json")},
        message="Organization updated",
    )
