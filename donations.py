"""
Donation Lists Module
Routes for donation lists, items and member pledges
"""
from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_login import login_required

from errors import PortalError
from models import DonationItem, DonationList, Member
from pledge_ledger import PledgeLedger, summarize
from rbac import current_context, has_permission, permission_required
from store import SQLAlchemyStore

donations_bp = Blueprint('donations', __name__, url_prefix='/donations')


def get_ledger():
    return PledgeLedger(SQLAlchemyStore())


def parse_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise PortalError(f'Invalid date: {value}. Use YYYY-MM-DD.')


def parse_id(value, label):
    if isinstance(value, bool):
        raise PortalError(f'Invalid {label}: {value}')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise PortalError(f'Invalid {label}: {value}')


def item_to_dict(item, ledger, include_pledges=True):
    pledges = ledger.pledges_for(item)
    aggregate = summarize(item, pledges)
    data = {
        'id': item.id,
        'list_id': item.list_id,
        'name': item.name,
        'description': item.description,
        'unit': item.unit,
        'requested_quantity': item.requested_quantity,
        'deadline': item.deadline.isoformat() if item.deadline else None,
        'total_pledged': aggregate.total_pledged,
        'remaining': aggregate.remaining,
        'is_full': aggregate.is_full,
    }
    if include_pledges:
        data['pledges'] = [pledge.to_dict() for pledge in pledges]
    return data


@donations_bp.route('/lists')
@login_required
@permission_required('view_donations')
def list_donation_lists():
    store = SQLAlchemyStore()
    lists = store.fetch_all(DonationList, order_by=['-created_at', '-id'])
    return jsonify({'success': True, 'lists': [donation_list.to_dict() for donation_list in lists]})


@donations_bp.route('/lists', methods=['POST'])
@login_required
@permission_required('manage_donations')
def create_donation_list():
    data = request.get_json(silent=True) or {}
    donation_list = get_ledger().create_list(
        name=(data.get('name') or '').strip(),
        description=data.get('description'),
        event_date=parse_date(data.get('event_date')),
    )
    return jsonify({'success': True, 'list': donation_list.to_dict()}), 201


@donations_bp.route('/lists/<int:list_id>')
@login_required
@permission_required('view_donations')
def view_donation_list(list_id):
    ledger = get_ledger()
    donation_list = ledger.store.require(DonationList, list_id)
    data = donation_list.to_dict()
    data['items'] = [item_to_dict(item, ledger) for item in ledger.items_for(donation_list)]
    return jsonify({'success': True, 'list': data})


@donations_bp.route('/lists/<int:list_id>', methods=['DELETE'])
@login_required
@permission_required('manage_donations')
def delete_donation_list(list_id):
    SQLAlchemyStore().delete(DonationList, list_id)
    return jsonify({'success': True})


@donations_bp.route('/lists/<int:list_id>/items', methods=['POST'])
@login_required
@permission_required('manage_donations')
def create_donation_item(list_id):
    ledger = get_ledger()
    donation_list = ledger.store.require(DonationList, list_id)
    data = request.get_json(silent=True) or {}
    item = ledger.create_item(
        donation_list,
        name=(data.get('name') or '').strip(),
        unit=(data.get('unit') or 'un').strip(),
        requested_quantity=data.get('requested_quantity'),
        description=data.get('description'),
        deadline=parse_date(data.get('deadline')),
    )
    return jsonify({'success': True, 'item': item_to_dict(item, ledger)}), 201


@donations_bp.route('/items/<int:item_id>')
@login_required
@permission_required('view_donations')
def view_donation_item(item_id):
    ledger = get_ledger()
    item = ledger.store.require(DonationItem, item_id)
    return jsonify({'success': True, 'item': item_to_dict(item, ledger)})


@donations_bp.route('/items/<int:item_id>', methods=['DELETE'])
@login_required
@permission_required('manage_donations')
def delete_donation_item(item_id):
    SQLAlchemyStore().delete(DonationItem, item_id)
    return jsonify({'success': True})


@donations_bp.route('/items/<int:item_id>/pledges', methods=['POST'])
@login_required
@permission_required('submit_pledges')
def submit_pledge(item_id):
    """Pledge a quantity toward an item; checked against the latest total"""
    ledger = get_ledger()
    item = ledger.store.require(DonationItem, item_id)
    context = current_context()
    data = request.get_json(silent=True) or {}

    member_id = context.member_id
    # Administrators may record a pledge on behalf of another member
    if data.get('member_id') is not None and has_permission('manage_donations'):
        member_id = parse_id(data['member_id'], 'member id')
        ledger.store.require(Member, member_id)

    pledge = ledger.submit_pledge(item, member_id, data.get('quantity'))
    return jsonify({
        'success': True,
        'pledge': pledge.to_dict(),
        'item': item_to_dict(item, ledger, include_pledges=False),
    }), 201


@donations_bp.route('/pledges/<int:pledge_id>', methods=['DELETE'])
@login_required
@permission_required('withdraw_pledges')
def withdraw_pledge(pledge_id):
    get_ledger().withdraw_pledge(pledge_id)
    return jsonify({'success': True})


@donations_bp.route('/lists/<int:list_id>/import', methods=['POST'])
@login_required
@permission_required('manage_donations')
def import_items(list_id):
    """Copy selected item definitions from other lists into this one"""
    ledger = get_ledger()
    target_list = ledger.store.require(DonationList, list_id)
    data = request.get_json(silent=True) or {}
    item_ids = data.get('item_ids') or []
    if not isinstance(item_ids, list):
        raise PortalError('item_ids must be a list of item ids.')
    if not item_ids:
        raise PortalError('Select at least one item to import.')

    source_items = [ledger.store.require(DonationItem, parse_id(item_id, 'item id'))
                    for item_id in item_ids]
    count = ledger.import_items(source_items, target_list)
    return jsonify({'success': True, 'imported': count})


@donations_bp.route('/lists/<int:list_id>/summary')
@login_required
@permission_required('view_donations')
def share_summary(list_id):
    ledger = get_ledger()
    donation_list = ledger.store.require(DonationList, list_id)
    item = None
    item_id = request.args.get('item_id', type=int)
    if item_id is not None:
        item = ledger.store.require(DonationItem, item_id)
    return jsonify({'success': True, 'list_id': list_id, 'item_id': item_id,
                    'text': ledger.share_summary(donation_list, item)})


@donations_bp.route('/overshoot')
@login_required
@permission_required('manage_donations')
def overshoot_report():
    """Items whose pledges went over quota, for administrator follow-up"""
    return jsonify({'success': True, 'items': get_ledger().overshoot_report()})


@donations_bp.route('/items/<int:item_id>/pledges')
@login_required
@permission_required('view_donations')
def list_item_pledges(item_id):
    ledger = get_ledger()
    item = ledger.store.require(DonationItem, item_id)
    return jsonify({'success': True, 'item_id': item_id,
                    'pledges': [pledge.to_dict() for pledge in ledger.pledges_for(item)]})
