from ..extensions import db
from .base import TimestampMixin

class Document(db.Model, TimestampMixin):
    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(64), nullable=False, index=True)
    doc_id = db.Column(db.String(255), nullable=False)
    data = db.Column(db.JSON, nullable=False, default=dict)
    # bumped on every write; compare-and-set checks against it
    version = db.Column(db.Integer, nullable=False, default=1)

    __table_args__ = (
        db.UniqueConstraint('collection', 'doc_id', name='uq_documents_collection_doc'),
    )

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.doc_id} v{self.version}>"
