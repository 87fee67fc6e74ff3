"""
输入校验器 (表单字段校验 + 收货地址快照校验)
"""
from wtforms.validators import ValidationError as FieldValidationError
from buildmart.exceptions import ValidationError
import re

PHONE_PATTERN = re.compile(r'^[6-9]\d{9}$')
PINCODE_PATTERN = re.compile(r'^\d{6}$')
COUPON_CODE_PATTERN = re.compile(r'^[A-Za-z0-9_-]{3,32}$')

ADDRESS_FIELDS = ('full_name', 'phone', 'address', 'city', 'state', 'pincode')


def validate_phone(form, field):
    """验证手机号格式 (印度 10 位手机号)"""
    if field.data:
        if not PHONE_PATTERN.match(str(field.data)):
            raise FieldValidationError('Please provide a valid phone number')


def validate_coupon_code(form, field):
    """券码只允许字母、数字、下划线和连字符"""
    if field.data:
        if not COUPON_CODE_PATTERN.match(field.data.strip()):
            raise FieldValidationError('Coupon code may only contain letters, digits, "_" and "-"')


def validate_non_negative(form, field):
    """验证非负数"""
    if field.data is not None and field.data < 0:
        raise FieldValidationError('Value cannot be negative')


def first_error(form):
    """取表单的第一条错误信息"""
    for name, messages in form.errors.items():
        if messages:
            return f'{name}: {messages[0]}'
    return 'Invalid data'


def validate_form(form):
    """表单校验失败时抛出业务 ValidationError"""
    if not form.validate():
        raise ValidationError(first_error(form), payload={'fields': form.errors})
    return form


def normalize_shipping_address(data):
    """
    校验并复制收货地址快照
    :param data: {'full_name', 'phone', 'address', 'city', 'state', 'pincode'}
    """
    if not isinstance(data, dict):
        raise ValidationError('Shipping address is required')

    snapshot = {}
    for key in ADDRESS_FIELDS:
        value = data.get(key)
        value = str(value).strip() if value is not None else ''
        if not value:
            raise ValidationError(f'Shipping address {key} is required')
        snapshot[key] = value

    if not PHONE_PATTERN.match(snapshot['phone']):
        raise ValidationError('Please provide a valid phone number')
    if not PINCODE_PATTERN.match(snapshot['pincode']):
        raise ValidationError('Please provide a valid 6-digit pincode')
    return snapshot
