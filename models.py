"""
Database models for the Community Portal
"""
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

# Payment statuses
PAYMENT_PENDING = 'pending_approval'
PAYMENT_PAID = 'paid'
PAYMENT_REJECTED = 'rejected'

# Member fee status overrides
FEE_NORMAL = 'normal'
FEE_EXEMPT = 'exempt'


class Member(UserMixin, db.Model):
    """Community members, their login and dues settings"""
    __tablename__ = 'members'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    religious_name = db.Column(db.String(100), nullable=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(20), nullable=False, default='member')  # admin, member
    active = db.Column(db.Boolean, nullable=False, default=True)
    fee_status = db.Column(db.String(20), nullable=False, default=FEE_NORMAL)  # normal, exempt
    monthly_fee = db.Column(db.Float, nullable=True)  # None falls back to the house default
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    pledges = db.relationship('Pledge', backref='member', lazy=True)
    payments = db.relationship('Payment', foreign_keys='Payment.member_id',
                               backref='member', lazy=True)

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if provided password matches hash"""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_active(self):
        # Flask-Login refuses sessions for inactive members
        return bool(self.active)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'religious_name': self.religious_name,
            'email': self.email,
            'role': self.role,
            'active': self.active,
            'fee_status': self.fee_status,
            'monthly_fee': self.monthly_fee,
        }

    def __repr__(self):
        return f'<Member {self.name}>'


class DonationList(db.Model):
    """A named collection of items the community needs, usually for one event"""
    __tablename__ = 'donation_lists'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    event_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship('DonationItem', backref='donation_list', lazy=True,
                            cascade='all, delete-orphan',
                            order_by='DonationItem.created_at')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'event_date': self.event_date.isoformat() if self.event_date else None,
        }

    def __repr__(self):
        return f'<DonationList {self.name}>'


class DonationItem(db.Model):
    """Something requested on a donation list, optionally capped by a quota"""
    __tablename__ = 'donation_items'

    id = db.Column(db.Integer, primary_key=True)
    list_id = db.Column(db.Integer, db.ForeignKey('donation_lists.id'), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    unit = db.Column(db.String(20), nullable=False, default='un')  # kg, un, L...
    requested_quantity = db.Column(db.Float, nullable=True)  # None means unlimited
    deadline = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    pledges = db.relationship('Pledge', backref='item', lazy=True,
                              cascade='all, delete-orphan')

    @property
    def has_quota(self):
        return self.requested_quantity is not None

    def __repr__(self):
        return f'<DonationItem {self.name} ({self.unit})>'


class Pledge(db.Model):
    """A member's committed quantity toward a donation item"""
    __tablename__ = 'donation_pledges'

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey('donation_items.id'), nullable=False)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'item_id': self.item_id,
            'member_id': self.member_id,
            'member_name': self.member.name if self.member else None,
            'quantity': self.quantity,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Pledge {self.quantity} to item {self.item_id}>'


class Payment(db.Model):
    """Monthly dues payments submitted by members with a proof of payment"""
    __tablename__ = 'member_payments'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PAYMENT_PENDING)  # pending_approval, paid, rejected
    proof_url = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    reviewed_by = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'member_id': self.member_id,
            'member_name': self.member.name if self.member else None,
            'month': self.month,
            'year': self.year,
            'amount': self.amount,
            'status': self.status,
            'proof_url': self.proof_url,
            'notes': self.notes,
            'reviewed_by': self.reviewed_by,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Payment ${self.amount} {self.month}/{self.year} ({self.status})>'


class Expense(db.Model):
    """Outgoing money recorded in the house ledger"""
    __tablename__ = 'financial_expenses'

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(200), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(50), nullable=True)
    expense_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'description': self.description,
            'amount': self.amount,
            'category': self.category,
            'expense_date': self.expense_date.isoformat(),
        }

    def __repr__(self):
        return f'<Expense ${self.amount} - {self.description}>'
