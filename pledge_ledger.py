"""
Donation Pledge Accounting
Tracks pledges against each donation item's requested quantity and keeps
the pledged total from going over it.
"""
from collections import namedtuple
import logging
import math

from errors import InvalidQuantity, NotFound, PortalError, QuotaExceeded
from models import DonationItem, DonationList, Pledge

logger = logging.getLogger(__name__)

PledgeAggregate = namedtuple('PledgeAggregate', ['total_pledged', 'remaining', 'is_full'])

# Decimal places kept when summing quantities
PRECISION = 6


def _normalize(value):
    return round(value, PRECISION)


def format_quantity(value):
    """Render 6.0 as '6' and 2.5 as '2.5'"""
    value = _normalize(float(value))
    if value == int(value):
        return str(int(value))
    return f'{value:.3f}'.rstrip('0').rstrip('.')


def parse_quantity(value):
    """Coerce a submitted quantity to a positive float or raise InvalidQuantity"""
    if value is None or isinstance(value, bool):
        raise InvalidQuantity()
    try:
        quantity = float(value)
    except (TypeError, ValueError):
        raise InvalidQuantity()
    if not math.isfinite(quantity) or quantity <= 0:
        raise InvalidQuantity()
    return quantity


def summarize(item, pledges):
    """Fold the complete pledge set of an item into its aggregate"""
    total = _normalize(math.fsum(pledge.quantity for pledge in pledges))
    if item.requested_quantity is None:
        return PledgeAggregate(total, None, False)
    remaining = _normalize(item.requested_quantity - total)
    return PledgeAggregate(total, remaining, total >= item.requested_quantity)


def render_item_summary(item, pledges):
    aggregate = summarize(item, pledges)
    unit = item.unit
    if item.has_quota:
        goal = f'(goal: {format_quantity(item.requested_quantity)} {unit})'
    else:
        goal = '(no limit)'

    lines = [f'*{item.name}*']
    if item.description:
        lines.append(item.description)
    lines.append(f'Status: {format_quantity(aggregate.total_pledged)} {unit} pledged {goal}')
    lines.append('Who is bringing:')
    if not pledges:
        lines.append('- No pledges yet')
    for pledge in pledges:
        name = pledge.member.name if pledge.member else f'Member {pledge.member_id}'
        lines.append(f'- {name}: {format_quantity(pledge.quantity)} {unit}')
    return '\n'.join(lines)


class PledgeLedger:
    """Pledge accounting over a Store"""

    def __init__(self, store):
        self.store = store

    def pledges_for(self, item):
        return self.store.fetch_all(Pledge, order_by=['created_at', 'id'], item_id=item.id)

    def items_for(self, donation_list):
        return self.store.fetch_all(DonationItem, order_by=['created_at', 'id'],
                                    list_id=donation_list.id)

    def aggregate(self, item):
        """Total pledged, remaining quota and fullness, always from the full pledge set"""
        return summarize(item, self.pledges_for(item))

    def submit_pledge(self, item, member_id, quantity):
        """Record a new pledge if it fits in the item's remaining quota

        The item row is locked and the total re-read inside the same
        transaction as the insert, so concurrent submissions cannot both
        pass the check on stores that honour the lock.
        """
        quantity = parse_quantity(quantity)

        with self.store.transaction():
            locked = self.store.lock(DonationItem, item.id)
            if locked is None:
                raise NotFound(f'Donation item {item.id} not found')

            current = self.aggregate(locked)
            if locked.has_quota and _normalize(current.total_pledged + quantity) > locked.requested_quantity:
                remaining = max(current.remaining, 0)
                logger.warning(f"Pledge of {quantity} by member {member_id} rejected for item "
                               f"{locked.id}: only {remaining} remaining")
                raise QuotaExceeded(
                    remaining,
                    f'Only {format_quantity(remaining)} {locked.unit} remaining for {locked.name}.'
                )

            pledge = self.store.insert(Pledge, item_id=locked.id, member_id=member_id,
                                       quantity=quantity)

        logger.info(f"Member {member_id} pledged {quantity} {locked.unit} to item {locked.id}")
        return pledge

    def withdraw_pledge(self, pledge_id):
        """Administrator removal of a pledge"""
        self.store.delete(Pledge, pledge_id)
        logger.info(f"Pledge {pledge_id} withdrawn")

    def create_list(self, name, description=None, event_date=None):
        if not name:
            raise PortalError('A donation list needs a name')
        return self.store.insert(DonationList, name=name, description=description,
                                 event_date=event_date)

    def create_item(self, donation_list, name, unit='un', requested_quantity=None,
                    description=None, deadline=None):
        if not name:
            raise PortalError('A donation item needs a name')
        if requested_quantity is not None:
            requested_quantity = parse_quantity(requested_quantity)
        return self.store.insert(DonationItem, list_id=donation_list.id, name=name,
                                 unit=unit or 'un', requested_quantity=requested_quantity,
                                 description=description, deadline=deadline)

    def import_items(self, source_items, target_list):
        """Copy item definitions into another list with a fresh quota and no pledges"""
        count = 0
        with self.store.transaction():
            for source in source_items:
                self.store.insert(DonationItem, list_id=target_list.id, name=source.name,
                                  description=source.description, unit=source.unit,
                                  requested_quantity=source.requested_quantity)
                count += 1

        logger.info(f"Imported {count} items into donation list {target_list.id}")
        return count

    def share_summary(self, donation_list, item=None):
        """Plain-text summary of a list (or one of its items) for sharing in chat"""
        if item is not None and item.list_id != donation_list.id:
            raise NotFound(f'Item {item.id} is not on donation list {donation_list.id}')

        header = [f'*Donation list: {donation_list.name}*']
        if donation_list.description:
            header.append(donation_list.description)
        if donation_list.event_date:
            header.append(f'Event date: {donation_list.event_date.isoformat()}')

        items = [item] if item is not None else self.items_for(donation_list)
        sections = ['\n'.join(header)]
        for entry in items:
            sections.append(render_item_summary(entry, self.pledges_for(entry)))
        return '\n\n'.join(sections) + '\n'

    def overshoot_report(self):
        """Items whose pledged total went over their quota"""
        report = []
        for item in self.store.fetch_all(DonationItem, order_by='id'):
            if not item.has_quota:
                continue
            aggregate = self.aggregate(item)
            if aggregate.total_pledged > item.requested_quantity:
                report.append({
                    'item_id': item.id,
                    'list_id': item.list_id,
                    'name': item.name,
                    'unit': item.unit,
                    'requested_quantity': item.requested_quantity,
                    'total_pledged': aggregate.total_pledged,
                    'excess': _normalize(aggregate.total_pledged - item.requested_quantity),
                })
        return report
