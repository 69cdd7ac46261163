from extensions import db
from datetime import datetime, timezone


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=False)  # Seeded on signup
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    __table_args__ = (
        db.UniqueConstraint('user_id', 'name', name='uq_categories_user_name'),
    )

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'is_default': bool(self.is_default)}

    def __repr__(self):
        return f'<Category {self.name}>'
