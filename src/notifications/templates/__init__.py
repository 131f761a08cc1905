"""Template registry: maps NotificationKind to template classes."""

from notifications.notification.notification import NotificationKind
from notifications.templates.order_confirmation import OrderConfirmationTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationKind.ORDER_CONFIRMATION.value: OrderConfirmationTemplate,
}


def get_template(kind: str):
    """Look up a template class by notification kind."""
    template_cls = TEMPLATE_REGISTRY.get(kind)
    if template_cls is None:
        raise ValueError(f"No template registered for notification kind: {kind}")
    return template_cls
