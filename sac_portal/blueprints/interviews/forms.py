from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired

class ScheduleForm(FlaskForm):
    # panel members arrive as a JSON list and are read from the request body
    date = StringField("Date", validators=[DataRequired()])
    time_slot = StringField("Time slot", validators=[DataRequired()])
    room = StringField("Room")
