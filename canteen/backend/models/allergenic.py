from sqlalchemy import Column, String, Text

from canteen.backend.database import Base
from canteen.backend.identifiers import new_object_id


class Allergenic(Base):
    __tablename__ = "allergenics"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False, unique=True, index=True)
    # base64 text as submitted by the client
    picture = Column(Text, nullable=True)
