"""
Dues Payments Module
Members submit monthly dues with a proof of payment; administrators review
them and see every member's status for a period.
"""
from flask import Blueprint, current_app, request, jsonify
from flask_login import login_required

from dues import DuesReconciler, Period, parse_amount
from errors import PortalError
from models import Payment
from rbac import current_context, has_permission, permission_required
from store import SQLAlchemyStore
from uploads import get_blob_store

payments_bp = Blueprint('payments', __name__, url_prefix='/payments')


def get_reconciler():
    return DuesReconciler(SQLAlchemyStore(), current_app.config['DEFAULT_MONTHLY_FEE'])


def period_from_args(args):
    """Period from month/year query or form values, defaulting to the current month"""
    current = Period.current()
    return Period(args.get('month', current.month), args.get('year', current.year))


@payments_bp.route('/')
@login_required
@permission_required('view_all_payments')
def list_payments():
    """All payments, newest first; ?status=pending_approval for the review queue"""
    status = request.args.get('status')
    payments = get_reconciler().list_payments(status=status)
    return jsonify({'success': True, 'payments': [payment.to_dict() for payment in payments]})


@payments_bp.route('/mine')
@login_required
@permission_required('view_own_payments')
def my_payments():
    context = current_context()
    payments = get_reconciler().list_payments(member_id=context.member_id)
    return jsonify({'success': True, 'payments': [payment.to_dict() for payment in payments]})


@payments_bp.route('/submit', methods=['POST'])
@login_required
@permission_required('submit_payments')
def submit_payment():
    """Upload a proof of payment for a month; it waits for review"""
    context = current_context()
    period = period_from_args(request.form)
    amount = parse_amount(request.form.get('amount'))

    proof = request.files.get('proof')
    if proof is None or proof.filename == '':
        raise PortalError('Please select a proof of payment.')

    blob_store = get_blob_store()
    key = blob_store.save(proof, prefix=f'{context.member_id}-{period.year}-{period.month}-')

    try:
        payment = get_reconciler().submit_payment(
            member_id=context.member_id,
            period=period,
            amount=amount,
            proof_url=blob_store.url_for(key),
            notes=request.form.get('notes'),
        )
    except Exception:
        # No payment row points at the proof, so it is removed
        blob_store.delete(key)
        raise
    return jsonify({
        'success': True,
        'message': 'Proof sent successfully! Please wait for it to be reviewed.',
        'payment': payment.to_dict(),
    }), 201


@payments_bp.route('/<int:payment_id>/review', methods=['POST'])
@login_required
@permission_required('review_payments')
def review_payment(payment_id):
    """Approve (paid) or reject a payment that is pending approval"""
    reconciler = get_reconciler()
    payment = reconciler.store.require(Payment, payment_id)
    data = request.get_json(silent=True) or {}

    context = current_context()
    payment = reconciler.review_pending_payment(payment, data.get('decision'),
                                                reviewer_id=context.member_id)
    return jsonify({'success': True, 'payment': payment.to_dict()})


@payments_bp.route('/statuses')
@login_required
@permission_required('view_all_payments', 'view_own_payments')
def member_statuses():
    """Dues status of every active member for ?month=&year="""
    period = period_from_args(request.args)
    statuses = get_reconciler().member_statuses_for(period)

    if not has_permission('view_all_payments'):
        context = current_context()
        statuses = [status for status in statuses if status.member_id == context.member_id]

    return jsonify({
        'success': True,
        'month': period.month,
        'year': period.year,
        'statuses': [status._asdict() for status in statuses],
    })
