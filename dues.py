"""
Dues Reconciliation
Derives every active member's dues status for a billing period from the
payment ledger, and the period's income and expense totals. Nothing derived
here is persisted; it is recomputed from the rows each time.
"""
from collections import namedtuple
from datetime import date, datetime
import calendar
import logging
import math

from errors import InvalidAmount, InvalidPeriod, InvalidTransition, NotFound, PortalError
from models import (
    Expense, Member, Payment,
    FEE_EXEMPT, FEE_NORMAL, PAYMENT_PAID, PAYMENT_PENDING, PAYMENT_REJECTED,
)

logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_FEE = 50.00

# Dues statuses
STATUS_UP_TO_DATE = 'up_to_date'
STATUS_DEFAULTING = 'defaulting'
STATUS_EXEMPT = 'exempt'

REVIEW_DECISIONS = (PAYMENT_PAID, PAYMENT_REJECTED)

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off')

PeriodStatus = namedtuple('PeriodStatus',
                          ['member_id', 'member_name', 'status', 'pending_months', 'total_due'])
PeriodTotals = namedtuple('PeriodTotals', ['income', 'expenses', 'balance'])


def _as_int(value):
    if isinstance(value, bool):
        raise InvalidPeriod()
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise InvalidPeriod()
    try:
        return int(value)
    except ValueError:
        raise InvalidPeriod(f'Invalid period value: {value!r}')


class Period(namedtuple('Period', ['month', 'year'])):
    """A (month, year) billing period"""
    __slots__ = ()

    def __new__(cls, month, year):
        month = _as_int(month)
        year = _as_int(year)
        if not 1 <= month <= 12:
            raise InvalidPeriod(f'Month must be between 1 and 12, got {month}')
        if not 1 <= year <= 9999:
            raise InvalidPeriod(f'Invalid year {year}')
        return super().__new__(cls, month, year)

    @classmethod
    def current(cls, today=None):
        today = today or date.today()
        return cls(today.month, today.year)

    @property
    def first_day(self):
        return date(self.year, self.month, 1)

    @property
    def last_day(self):
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, day):
        if isinstance(day, datetime):
            day = day.date()
        return self.first_day <= day <= self.last_day

    def matches(self, row):
        return row.month == self.month and row.year == self.year

    def __str__(self):
        return f'{self.month:02d}/{self.year}'


def member_fee(member, default_fee=DEFAULT_MONTHLY_FEE):
    return member.monthly_fee if member.monthly_fee is not None else default_fee


def compute_member_statuses(period, members, payments, default_fee=DEFAULT_MONTHLY_FEE):
    """Classify each active member as exempt, up to date or defaulting for one period

    Only payments with status 'paid' for exactly this period count; any
    number of such rows means the member is up to date.
    """
    paid_members = {
        payment.member_id for payment in payments
        if payment.status == PAYMENT_PAID and period.matches(payment)
    }

    statuses = []
    for member in sorted((m for m in members if m.active), key=lambda m: (m.name, m.id)):
        if member.fee_status == FEE_EXEMPT:
            status, total_due = STATUS_EXEMPT, 0.0
        elif member.id in paid_members:
            status, total_due = STATUS_UP_TO_DATE, 0.0
        else:
            status, total_due = STATUS_DEFAULTING, float(member_fee(member, default_fee))

        statuses.append(PeriodStatus(
            member_id=member.id,
            member_name=member.name,
            status=status,
            pending_months=1 if status == STATUS_DEFAULTING else 0,
            total_due=total_due,
        ))
    return statuses


def compute_period_totals(period, paid_income_rows, expense_rows):
    """Income from paid dues referencing the period, expenses dated inside its month"""
    income = math.fsum(
        row.amount for row in paid_income_rows
        if row.status == PAYMENT_PAID and period.matches(row)
    )
    expenses = math.fsum(
        row.amount for row in expense_rows
        if period.contains(row.expense_date)
    )
    return PeriodTotals(round(income, 2), round(expenses, 2), round(income - expenses, 2))


def parse_amount(value):
    if value is None or isinstance(value, bool):
        raise InvalidAmount()
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidAmount()
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmount()
    return amount


def parse_flag(value):
    """Accept a real boolean or a form-style string such as 'false' or '1'"""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    raise PortalError(f'Invalid flag value: {value!r}')


class DuesReconciler:
    """Dues and period finance over a Store"""

    def __init__(self, store, default_fee=DEFAULT_MONTHLY_FEE):
        self.store = store
        self.default_fee = default_fee

    def compute_member_statuses(self, period, members, payments):
        return compute_member_statuses(period, members, payments, self.default_fee)

    def compute_period_totals(self, period, paid_income_rows, expense_rows):
        return compute_period_totals(period, paid_income_rows, expense_rows)

    def member_statuses_for(self, period):
        members = self.store.fetch_all(Member, order_by=['name', 'id'], active=True)
        payments = self.store.fetch_all(Payment, month=period.month, year=period.year,
                                        status=PAYMENT_PAID)
        return self.compute_member_statuses(period, members, payments)

    def expenses_for(self, period):
        return self.store.fetch_all(Expense, order_by=['-expense_date', '-id'],
                                    between=('expense_date', period.first_day, period.last_day))

    def period_totals_for(self, period):
        income_rows = self.store.fetch_all(Payment, month=period.month, year=period.year,
                                           status=PAYMENT_PAID)
        return self.compute_period_totals(period, income_rows, self.expenses_for(period))

    def list_payments(self, status=None, member_id=None):
        filters = {}
        if status:
            filters['status'] = status
        if member_id is not None:
            filters['member_id'] = member_id
        return self.store.fetch_all(Payment, order_by=['-created_at', '-id'], **filters)

    def submit_payment(self, member_id, period, amount, proof_url=None, notes=None):
        """A member reports a dues payment; it waits for an administrator's review"""
        amount = parse_amount(amount)
        payment = self.store.insert(Payment, member_id=member_id, month=period.month,
                                    year=period.year, amount=amount, status=PAYMENT_PENDING,
                                    proof_url=proof_url, notes=notes)
        logger.info(f"Member {member_id} submitted payment {payment.id} of {amount} for {period}")
        return payment

    def review_pending_payment(self, payment, decision, reviewer_id=None):
        """Approve or reject a pending payment; reviewed payments cannot be reviewed again"""
        if decision not in REVIEW_DECISIONS:
            raise InvalidTransition(f'Unknown review decision: {decision}')

        with self.store.transaction():
            current = self.store.lock(Payment, payment.id)
            if current is None:
                raise NotFound(f'Payment {payment.id} not found')
            if current.status != PAYMENT_PENDING:
                logger.warning(f"Payment {current.id} is already {current.status}; "
                               f"review to {decision} refused")
                raise InvalidTransition(f'Payment is already {current.status}.',
                                        status=current.status)

            self.store.update(Payment, current.id, status=decision, reviewed_by=reviewer_id,
                              reviewed_at=datetime.utcnow())

        logger.info(f"Payment {current.id} marked {decision} by member {reviewer_id}")
        return current

    def record_expense(self, description, amount, expense_date, category=None):
        if not description:
            raise PortalError('An expense needs a description')
        amount = parse_amount(amount)
        expense = self.store.insert(Expense, description=description, amount=amount,
                                    category=category or None, expense_date=expense_date)
        logger.info(f"Expense {expense.id} of {amount} recorded for {expense_date}")
        return expense

    def set_member_fee(self, member_id, fee_status=None, monthly_fee=None, active=None,
                       clear_fee=False):
        """Administrator edit of a member's dues settings"""
        values = {}
        if fee_status is not None:
            if fee_status not in (FEE_NORMAL, FEE_EXEMPT):
                raise PortalError(f'Unknown fee status: {fee_status}')
            values['fee_status'] = fee_status
        if clear_fee:
            values['monthly_fee'] = None
        elif monthly_fee is not None:
            try:
                monthly_fee = float(monthly_fee)
            except (TypeError, ValueError):
                raise InvalidAmount()
            if not math.isfinite(monthly_fee) or monthly_fee < 0:
                raise InvalidAmount()
            values['monthly_fee'] = monthly_fee
        if active is not None:
            values['active'] = parse_flag(active)

        member = self.store.update(Member, member_id, **values)
        logger.info(f"Dues settings for member {member_id} updated: {values}")
        return member
