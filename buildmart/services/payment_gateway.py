"""
Razorpay 支付网关适配
使用 httpx 直接调用 REST API，无需官方 SDK
"""
import hmac
import json
import hashlib
import httpx
from flask import current_app
from buildmart.exceptions import PaymentGatewayError


def generate_signature(secret: str, message) -> str:
    """HMAC-SHA256 十六进制签名"""
    if isinstance(message, str):
        message = message.encode('utf-8')
    return hmac.new((secret or '').encode('utf-8'), message, hashlib.sha256).hexdigest()


def verify_payment_signature(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    """校验支付回调签名：HMAC(secret, order_id|payment_id)"""
    if not secret or not signature:
        return False
    expected = generate_signature(secret, f'{order_id}|{payment_id}')
    return hmac.compare_digest(expected, str(signature))


def serialize_payload(payload) -> bytes:
    """Webhook 负载序列化：原始字节原样使用，dict 使用紧凑 JSON"""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode('utf-8')
    return json.dumps(payload, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


def verify_webhook_signature(secret: str, payload, signature: str) -> bool:
    if not secret or not signature:
        return False
    expected = generate_signature(secret, serialize_payload(payload))
    return hmac.compare_digest(expected, str(signature))


class RazorpayGateway:
    """Razorpay 订单接口封装"""

    def __init__(self, key_id, key_secret, base_url='https://api.razorpay.com/v1', timeout=15.0):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    @classmethod
    def from_config(cls, config=None):
        config = config or current_app.config
        return cls(
            key_id=config.get('RAZORPAY_KEY_ID'),
            key_secret=config.get('RAZORPAY_KEY_SECRET'),
            base_url=config.get('RAZORPAY_API_BASE', 'https://api.razorpay.com/v1'),
            timeout=config.get('RAZORPAY_TIMEOUT', 15.0),
        )

    @property
    def is_configured(self):
        return bool(self.key_id and self.key_secret)

    def _client(self):
        return httpx.Client(base_url=self.base_url, auth=(self.key_id, self.key_secret), timeout=self.timeout)

    def create_order(self, amount: float, currency: str, receipt: str, notes: dict = None) -> dict:
        """
        创建远端支付订单
        :param amount: 以卢比计的金额，接口要求以派士 (paise) 为单位
        """
        if not self.is_configured:
            raise PaymentGatewayError('Payment gateway is not configured', code=503)

        body = {
            'amount': int(round(amount * 100)),
            'currency': currency,
            'receipt': receipt,
            'notes': notes or {},
        }
        try:
            with self._client() as client:
                response = client.post('/orders', json=body)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            current_app.logger.error(f'Razorpay order creation failed: {e.response.status_code} {e.response.text}')
            raise PaymentGatewayError('Payment gateway rejected the request')
        except httpx.HTTPError as e:
            current_app.logger.error(f'Razorpay unreachable: {e}')
            raise PaymentGatewayError()

    def create_refund(self, payment_id: str, amount: float = None, notes: dict = None) -> dict:
        """
        对已捕获的支付发起退款
        :param amount: 退款金额 (卢比)，为空时全额退款
        """
        if not self.is_configured:
            raise PaymentGatewayError('Payment gateway is not configured', code=503)
        if not payment_id:
            raise PaymentGatewayError('Payment has no gateway reference to refund', code=400)

        body = {'notes': notes or {}}
        if amount is not None:
            body['amount'] = int(round(amount * 100))
        try:
            with self._client() as client:
                response = client.post(f'/payments/{payment_id}/refund', json=body)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            current_app.logger.error(f'Razorpay refund failed: {e.response.status_code} {e.response.text}')
            raise PaymentGatewayError('Payment gateway rejected the refund')
        except httpx.HTTPError as e:
            current_app.logger.error(f'Razorpay unreachable: {e}')
            raise PaymentGatewayError()
