from flask_wtf import FlaskForm
from wtforms import StringField, FloatField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional
from buildmart.utils.validators import validate_coupon_code


class CancelOrderForm(FlaskForm):
    """买家取消订单"""
    reason = StringField('Reason', validators=[Optional(), Length(max=500)])


class ApplyCouponForm(FlaskForm):
    """结算前预览优惠"""
    coupon_code = StringField('Coupon code', validators=[
        DataRequired(message='Coupon code is required'), validate_coupon_code
    ])
    total_amount = FloatField('Total amount', validators=[
        InputRequired(message='Total amount is required'),
        NumberRange(min=0.01, message='Total amount must be greater than 0')
    ])
