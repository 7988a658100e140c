from tutorix.schemas.payment.order import (
    CheckoutOrderResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    FailedOrderResponse,
    MarkOrderFailedRequest,
    MarkOrderFailedResponse,
    MultiOrderRequest,
    MultiOrderResponse,
    RecordSummary,
)
from tutorix.schemas.payment.settings import (
    BankVerificationResponse,
    LinkedAccountCreate,
    PaymentConfigResponse,
    PaymentSettingsResponse,
    PaymentSettingsUpdate,
)
from tutorix.schemas.payment.verification import (
    AllocationResponse,
    FeeRefundResponse,
    MultiVerifyResponse,
    OnlinePaymentResponse,
    OnlineRefundRequest,
    OnlineRefundResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)

__all__ = [
    "CreateOrderRequest",
    "RecordSummary",
    "CheckoutOrderResponse",
    "CreateOrderResponse",
    "MultiOrderRequest",
    "MultiOrderResponse",
    "MarkOrderFailedRequest",
    "MarkOrderFailedResponse",
    "FailedOrderResponse",
    "VerifyPaymentRequest",
    "VerifyPaymentResponse",
    "AllocationResponse",
    "MultiVerifyResponse",
    "OnlineRefundRequest",
    "FeeRefundResponse",
    "OnlineRefundResponse",
    "OnlinePaymentResponse",
    "PaymentSettingsResponse",
    "PaymentSettingsUpdate",
    "LinkedAccountCreate",
    "BankVerificationResponse",
    "PaymentConfigResponse",
]
