from datetime import datetime
from checkout import db


class StoredCart(db.Model):
    """
    A cart snapshot parked in the database under an identifier
    (typically a user id), so it can be restored in a later session.

    `content` holds the JSON snapshot {items, adjustments, currency};
    its shape is owned by Cart.to_dict().
    """
    __tablename__ = 'stored_carts'

    id         = db.Column(db.Integer, primary_key=True)
    identifier = db.Column(db.String(191), unique=True, nullable=False, index=True)
    instance   = db.Column(db.String(100), nullable=False, default='default')
    content    = db.Column(db.Text, nullable=False, default='{}')
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    def __repr__(self):
        return f"<StoredCart {self.identifier!r} instance={self.instance!r}>"
