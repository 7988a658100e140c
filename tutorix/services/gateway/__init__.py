from tutorix.services.gateway.razorpay_gateway import RazorpayGateway, compute_signature, get_gateway

__all__ = ["RazorpayGateway", "compute_signature", "get_gateway"]
