from flask_wtf import FlaskForm
from wtforms import StringField, FloatField, SelectField, DateTimeField
from wtforms.validators import DataRequired, InputRequired, Optional
from buildmart.blueprints.distributor.forms import DATETIME_FORMATS
from buildmart.models.coupon import Coupon
from buildmart.utils.validators import validate_coupon_code, validate_non_negative


class CouponForm(FlaskForm):
    """新建优惠券"""
    code = StringField('Code', validators=[
        DataRequired(message='Coupon code is required'), validate_coupon_code
    ])
    discount_type = SelectField('Discount type', choices=[(t, t) for t in Coupon.TYPES], validators=[
        DataRequired(message='Discount type is required')
    ])
    discount_value = FloatField('Discount value', validators=[
        InputRequired(message='Discount value is required')
    ])
    min_purchase = FloatField('Minimum purchase', validators=[Optional(), validate_non_negative])
    max_discount = FloatField('Maximum discount', validators=[Optional(), validate_non_negative])
    expiry_date = DateTimeField('Expiry date', format=DATETIME_FORMATS, validators=[
        DataRequired(message='Expiry date is required')
    ])


class CouponUpdateForm(FlaskForm):
    """修改优惠券 (券码和类型不可修改)"""
    discount_value = FloatField('Discount value', validators=[Optional()])
    min_purchase = FloatField('Minimum purchase', validators=[Optional(), validate_non_negative])
    max_discount = FloatField('Maximum discount', validators=[Optional(), validate_non_negative])
    expiry_date = DateTimeField('Expiry date', format=DATETIME_FORMATS, validators=[Optional()])
