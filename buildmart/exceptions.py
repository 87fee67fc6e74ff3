class BuildMartException(Exception):
    """BuildMart 业务异常基类 (可预期的操作错误)"""
    error = 'ServerError'

    def __init__(self, message, code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['code'] = self.code
        rv['error'] = self.error
        rv['success'] = False
        return rv


class ValidationError(BuildMartException):
    """输入错误 / 非法状态流转 / 业务规则冲突"""
    error = 'ValidationError'

    def __init__(self, message="Invalid data", payload=None):
        super().__init__(message, code=400, payload=payload)


class AuthenticationError(BuildMartException):
    error = 'AuthenticationError'

    def __init__(self, message="Not authenticated", payload=None):
        super().__init__(message, code=401, payload=payload)


class AuthorizationError(BuildMartException):
    """调用方无权操作目标订单"""
    error = 'AuthorizationError'

    def __init__(self, message="Not authorized to access this resource", payload=None):
        super().__init__(message, code=403, payload=payload)


class NotFoundError(BuildMartException):
    error = 'NotFoundError'

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, code=404, payload=payload)


class ConflictError(BuildMartException):
    """唯一键冲突 / 并发更新冲突"""
    error = 'ConflictError'

    def __init__(self, message="Resource already exists", payload=None):
        super().__init__(message, code=409, payload=payload)


class PaymentGatewayError(BuildMartException):
    """支付网关不可用或返回异常"""
    error = 'PaymentGatewayError'

    def __init__(self, message="Payment gateway unavailable", code=502, payload=None):
        super().__init__(message, code=code, payload=payload)
