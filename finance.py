"""
Finance Module
Monthly income/expense balance and the expense ledger
"""
from flask import Blueprint, request, jsonify
from flask_login import login_required

from donations import parse_date
from errors import PortalError
from payments import get_reconciler, period_from_args
from rbac import permission_required

finance_bp = Blueprint('finance', __name__, url_prefix='/finance')


@finance_bp.route('/summary')
@login_required
@permission_required('view_financial_reports')
def summary():
    """Income from paid dues of the period against expenses dated in its month"""
    period = period_from_args(request.args)
    reconciler = get_reconciler()
    totals = reconciler.period_totals_for(period)
    return jsonify({
        'success': True,
        'month': period.month,
        'year': period.year,
        'income': totals.income,
        'expenses': totals.expenses,
        'balance': totals.balance,
    })


@finance_bp.route('/expenses')
@login_required
@permission_required('view_financial_reports')
def list_expenses():
    period = period_from_args(request.args)
    expenses = get_reconciler().expenses_for(period)
    return jsonify({
        'success': True,
        'month': period.month,
        'year': period.year,
        'expenses': [expense.to_dict() for expense in expenses],
    })


@finance_bp.route('/expenses', methods=['POST'])
@login_required
@permission_required('record_expenses')
def add_expense():
    data = request.get_json(silent=True) or {}
    expense_date = parse_date(data.get('date'))
    if expense_date is None:
        raise PortalError('An expense needs a date.')

    expense = get_reconciler().record_expense(
        description=(data.get('description') or '').strip(),
        amount=data.get('amount'),
        expense_date=expense_date,
        category=(data.get('category') or '').strip(),
    )
    return jsonify({'success': True, 'expense': expense.to_dict()}), 201
