"""Order confirmation template: sent once the payment is verified."""

from notifications.notification.notification import NotificationKind


class OrderConfirmationTemplate:
    kind = NotificationKind.ORDER_CONFIRMATION.value

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        amount = context.get("amount", "0.00")
        currency = context.get("currency", "INR")
        lines = context.get("items", [])
        item_text = "".join(f"  - {line['name']} x {line['quantity']}: {currency} {line['total']}\n" for line in lines)
        return {
            "subject": f"Order {order_number} confirmed",
            "body": (
                f"Thank you! We have received your payment for order {order_number}.\n\n"
                f"{item_text}"
                f"\nAmount paid: {currency} {amount}\n"
                f"Payment reference: {context.get('payment_id', 'N/A')}\n\n"
                "We'll notify you once your order ships."
            ),
        }
