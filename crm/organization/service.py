"""Organization service — read and update the caller's tenant."""

from crm.auth.schemas import OrganizationPublic
from crm.stores import OrganizationStore
from crm.utils import Logger, merge_non_null, utcnow
from crm.utils.exceptions import NotFoundError, ValidationError

logger = Logger("organization")


class OrganizationService:
    def __init__(self, organizations: OrganizationStore):
        self.organizations = organizations

    async def _get(self, org_id: str) -> dict:
        org = await self.organizations.find_by_id(org_id)
        if not org:
            raise NotFoundError("Organization not found")
        return org

    async def get_organization(self, org_id: str) -> OrganizationPublic:
        return OrganizationPublic.from_doc(await self._get(org_id))

    async def update_organization(self, org_id: str, update_data: dict) -> OrganizationPublic:
        """
        Rename and/or merge settings. The slug is fixed at registration
        and does not follow renames.
        """
        org = await self._get(org_id)

        changes: dict = {}
        if update_data.get("name"):
            changes["name"] = " ".join(update_data["name"].split())
        if update_data.get("settings"):
            changes["settings"] = merge_non_null(
                org.get("settings"), update_data["settings"]
            )
        if not changes:
            raise ValidationError("No valid fields to update")

        changes["updated_at"] = utcnow()
        updated = await self.organizations.update(org_id, changes)
        if not updated:
            raise NotFoundError("Organization not found")

        logger.info(f"Organization {org_id} updated: {sorted(changes)}")
        return OrganizationPublic.from_doc(updated)
