"""Tenant settings and student contact models.

Both are read-only from the webhook's point of view: they are written by the
settings and student screens of the application.
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import ProcessorEnvironment


class MessagingConfig(BaseModel):
    """A tenant's Evolution API (WhatsApp) instance."""

    api_url: str = ""
    api_key: str = ""
    instance_name: str = ""
    is_connected: bool = False

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.api_key and self.instance_name)


class TenantCredential(BaseModel):
    """A tenant's Mercado Pago credential and messaging channel."""

    tenant_id: str
    access_token: str = Field(..., min_length=1, repr=False)
    public_key: str | None = None
    environment: ProcessorEnvironment = ProcessorEnvironment.SANDBOX
    is_configured: bool = False
    messaging: MessagingConfig = Field(default_factory=MessagingConfig)

    @classmethod
    def from_settings_item(cls, item: dict[str, Any]) -> "TenantCredential | None":
        """Build a credential from a ``tenant-settings`` item.

        Returns:
            The credential, or None when the tenant has no access token
        """
        settings = item.get("settings") or {}
        mercadopago = settings.get("mercadopago") or {}
        access_token = str(mercadopago.get("access_token") or "").strip()
        if not access_token:
            return None

        environment = mercadopago.get("environment") or ProcessorEnvironment.SANDBOX.value
        if environment not in {e.value for e in ProcessorEnvironment}:
            environment = ProcessorEnvironment.SANDBOX.value

        whatsapp = settings.get("whatsapp") or {}
        return cls(
            tenant_id=str(item["tenant_id"]),
            access_token=access_token,
            public_key=mercadopago.get("public_key") or None,
            environment=ProcessorEnvironment(environment),
            is_configured=bool(mercadopago.get("is_configured", False)),
            messaging=MessagingConfig(
                api_url=str(whatsapp.get("api_url") or "").rstrip("/"),
                api_key=str(whatsapp.get("api_key") or ""),
                instance_name=str(whatsapp.get("instance_name") or ""),
                is_connected=bool(whatsapp.get("is_connected", False)),
            ),
        )


class Student(BaseModel):
    """The contact fields of a student record used for confirmations."""

    student_id: str
    tenant_id: str | None = None
    full_name: str = ""
    email: str | None = None
    phone: str | None = None

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "Student":
        return cls(
            student_id=str(item["student_id"]),
            tenant_id=item.get("tenant_id"),
            full_name=str(item.get("full_name") or ""),
            email=item.get("email") or None,
            phone=str(item["phone"]) if item.get("phone") else None,
        )
