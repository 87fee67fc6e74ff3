from flask_wtf import FlaskForm
from wtforms import StringField, FloatField, DateTimeField
from wtforms.validators import DataRequired, Length, Optional, URL

DATETIME_FORMATS = ['%Y-%m-%d', '%Y-%m-%dT%H:%M', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M:%S.%f']


class StatusUpdateForm(FlaskForm):
    """订单状态流转 (可附带物流信息)"""
    status = StringField('Status', validators=[DataRequired(message='Status is required')])
    note = StringField('Note', validators=[Optional(), Length(max=500)])
    tracking_number = StringField('Tracking number', validators=[Optional(), Length(max=64)])
    tracking_url = StringField('Tracking URL', validators=[
        Optional(), URL(message='Please provide a valid tracking URL'), Length(max=256)
    ])
    estimated_delivery = DateTimeField('Estimated delivery', format=DATETIME_FORMATS, validators=[Optional()])


class ApproveOrderForm(FlaskForm):
    """审核通过，可覆盖运费"""
    delivery_charge = FloatField('Delivery charge', validators=[Optional()])
    note = StringField('Note', validators=[Optional(), Length(max=500)])


class RejectOrderForm(FlaskForm):
    reason = StringField('Reason', validators=[Optional(), Length(max=500)])
