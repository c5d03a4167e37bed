"""
Member Management Module
Member roll and per-member dues settings
"""
from flask import Blueprint, request, jsonify
from flask_login import login_required

from models import Member
from dues import parse_flag
from payments import get_reconciler
from rbac import permission_required

members_bp = Blueprint('members', __name__, url_prefix='/members')


@members_bp.route('/')
@login_required
@permission_required('view_all_members')
def list_members():
    reconciler = get_reconciler()
    members = reconciler.store.fetch_all(Member, order_by=['name', 'id'])
    return jsonify({
        'success': True,
        'default_monthly_fee': reconciler.default_fee,
        'members': [member.to_dict() for member in members],
    })


@members_bp.route('/<int:member_id>/fee', methods=['POST'])
@login_required
@permission_required('edit_member_fees')
def update_fee(member_id):
    """Set fee status (normal/exempt), monthly fee and active flag"""
    data = request.get_json(silent=True) or {}
    member = get_reconciler().set_member_fee(
        member_id,
        fee_status=data.get('fee_status'),
        monthly_fee=data.get('monthly_fee'),
        active=data.get('active'),
        clear_fee=parse_flag(data.get('use_default_fee', False)),
    )
    return jsonify({'success': True, 'member': member.to_dict()})
