from datetime import datetime
from checkout import db
from checkout.pricing.money import Money


class Product(db.Model):
    """A sellable product. Prices are stored in integer minor units."""
    __tablename__ = 'products'

    id          = db.Column(db.Integer, primary_key=True)
    sku         = db.Column(db.String(100), unique=True, nullable=False, index=True)
    name        = db.Column(db.String(200), nullable=False, index=True)
    price       = db.Column(db.Integer, nullable=False)             # minor units, e.g. pence
    currency    = db.Column(db.String(3), nullable=False, default='GBP')
    is_active   = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('price >= 0', name='check_price_non_negative'),
    )

    # ── Buyable ───────────────────────────────────────────────────

    def get_buyable_identifier(self, options=None):
        return self.id

    def get_buyable_description(self, options=None):
        """Product name, with the chosen size appended when there is one."""
        size = (options or {}).get('size')
        return f'{self.name} ({size})' if size else self.name

    def get_buyable_price(self, options=None) -> Money:
        return Money(self.price, self.currency)

    def __repr__(self):
        return f"<Product {self.sku!r} {self.name!r}>"
