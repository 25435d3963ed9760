from .user import User
from .document import Document
# base and mixins are imported by the above as needed
