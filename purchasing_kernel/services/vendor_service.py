"""
VendorService -- create or update vendor records.

Any known actor may maintain vendors.  Name is required and non-blank.
Updates are partial: omitted fields keep their stored value, ``None``
clears them.  Each call writes one status-log entry ("Vendor created" or
"Vendor updated" with the changed fields).
"""

from typing import Any
from uuid import UUID

from purchasing_kernel.domain.values import UNSET, clean_text, require_text
from purchasing_kernel.exceptions import VendorNotFoundError
from purchasing_kernel.logging_config import LogContext, get_logger
from purchasing_kernel.models.vendor import VENDOR_FIELDS, Vendor, VendorModel
from purchasing_kernel.services.base import BaseService
from purchasing_kernel.services.status_log_service import StatusLogService

logger = get_logger("services.vendor")

ENTITY_TYPE = "vendor"


class VendorService(BaseService):

    def get(self, vendor_id: UUID) -> Vendor:
        vendor = self.session.get(VendorModel, vendor_id)
        if vendor is None:
            raise VendorNotFoundError(str(vendor_id))
        return vendor.to_dto()

    def upsert_vendor(
        self,
        actor_id: UUID,
        vendor_id: UUID | None = None,
        *,
        name: Any = UNSET,
        trade: Any = UNSET,
        phone: Any = UNSET,
        email: Any = UNSET,
        website: Any = UNSET,
        address_line1: Any = UNSET,
        address_line2: Any = UNSET,
        city: Any = UNSET,
        state: Any = UNSET,
        postal_code: Any = UNSET,
        payment_terms: Any = UNSET,
        notes: Any = UNSET,
        is_active: Any = UNSET,
    ) -> Vendor:
        supplied = {
            k: v
            for k, v in {
                "name": name,
                "trade": trade,
                "phone": phone,
                "email": email,
                "website": website,
                "address_line1": address_line1,
                "address_line2": address_line2,
                "city": city,
                "state": state,
                "postal_code": postal_code,
                "payment_terms": payment_terms,
                "notes": notes,
                "is_active": is_active,
            }.items()
            if v is not UNSET
        }

        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)

                if vendor_id is None:
                    vendor = self._create(actor.id, supplied)
                    message, changed = "Vendor created", {}
                else:
                    vendor = self._lock(VendorModel, vendor_id, VendorNotFoundError)
                    changed = self._apply(vendor, supplied)
                    vendor.updated_by_id = actor.id
                    message = "Vendor updated"
                self.session.flush()

                StatusLogService(self.session, self.clock).record(
                    ENTITY_TYPE,
                    vendor.id,
                    actor.id,
                    message=message,
                    metadata={"name": vendor.name, "changed": changed},
                )
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "vendor_upserted",
            extra={
                "vendor_id": str(vendor.id),
                "is_new": vendor_id is None,
                "changed_fields": sorted(changed),
            },
        )
        return vendor.to_dto()

    def _create(self, actor_id: UUID, supplied: dict[str, Any]) -> VendorModel:
        vendor = VendorModel(
            name=require_text("name", supplied.get("name")),
            is_active=bool(supplied.get("is_active", True)),
            created_by_id=actor_id,
        )
        for field_name in VENDOR_FIELDS:
            if field_name in ("name", "is_active"):
                continue
            setattr(vendor, field_name, clean_text(supplied.get(field_name)))
        self.session.add(vendor)
        return vendor

    def _apply(self, vendor: VendorModel, supplied: dict[str, Any]) -> dict[str, dict]:
        changed: dict[str, dict] = {}
        for field_name, raw in supplied.items():
            if field_name == "name":
                value = require_text("name", raw)
            elif field_name == "is_active":
                value = bool(raw) if raw is not None else True
            else:
                value = clean_text(raw)
            old = getattr(vendor, field_name)
            if old != value:
                changed[field_name] = {"old": old, "new": value}
                setattr(vendor, field_name, value)
        return changed
