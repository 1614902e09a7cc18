"""
Chart-of-accounts and cost-center trees.

Both trees are stored as rows with a parent id. Every traversal loads the
business's nodes with a single query into a ``{parent_id: [children]}``
arena and walks it, so cycle checks and cascades never follow lazy
relations.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models, transaction
from ..exceptions import ConflictError
from ..models import AccountGroup, CostCenter, VoucherItem
from .audit_helper import log_action, snapshot
from .validation import ensure_same_business

logger = logging.getLogger(__name__)


# ----------------------------
# Arena helpers
# ----------------------------
def _children_map(nodes, sort_key):
    children = defaultdict(list)
    for node in nodes:
        children[node.parent_id].append(node)
    for siblings in children.values():
        siblings.sort(key=sort_key)
    return children


def _walk(children, parent_id=None, depth=0):
    """Pre-order, depth-first: yields (node, depth)."""
    for node in children.get(parent_id, []):
        yield node, depth
        yield from _walk(children, node.pk, depth + 1)


def _group_arena(business):
    groups = AccountGroup.objects.filter(business=business)
    return _children_map(groups, sort_key=lambda g: (g.sequence, g.name))


def _cost_center_arena(business):
    centers = CostCenter.objects.filter(business=business)
    return _children_map(centers, sort_key=lambda c: c.name)


# ----------------------------
# Account groups
# ----------------------------
def flatten_hierarchy(business):
    """[(id, name, depth), ...] in pre-order, siblings by sequence then name."""
    return [(g.pk, g.name, depth) for g, depth in _walk(_group_arena(business))]


def descendant_ids(group):
    """Ids of every group below ``group`` (not including itself)."""
    children = _group_arena(group.business_id)
    return {node.pk for node, _ in _walk(children, group.pk)}


def leaf_groups(business):
    """Groups without children, in hierarchy order."""
    children = _group_arena(business)
    return [g for g, _ in _walk(children) if not children.get(g.pk)]


@transaction.atomic
def create_group(business, name, nature, parent=None, *, sequence=0,
                 affects_gross_profit=False, description="", is_system=False,
                 user=None):
    if parent is not None:
        ensure_same_business(business, parent)
        if parent.nature != nature:
            raise ValidationError(
                f"Nature '{nature}' does not match parent nature '{parent.nature}'."
            )
    group = AccountGroup(
        business=business,
        parent=parent,
        name=name,
        nature=nature,
        sequence=sequence,
        affects_gross_profit=affects_gross_profit,
        description=description,
        is_system=is_system,
    )
    group.save()
    log_action(action="create", instance=group, user=user)
    return group


@transaction.atomic
def update_group(group, user=None, **changes):
    """
    Edit name/parent/nature/sequence of a non-system group.
    A nature change cascades to every descendant.
    """
    group = AccountGroup.objects.select_for_update().get(pk=group.pk)
    if group.is_system:
        raise ConflictError("System account groups cannot be edited.")
    old = snapshot(group)

    if "parent" in changes:
        parent = changes.pop("parent")
        if parent is not None:
            ensure_same_business(group.business, parent)
            # a node may not hang below itself or its own subtree
            if parent.pk == group.pk or parent.pk in descendant_ids(group):
                raise ValidationError(
                    "An account group cannot be moved under itself or one of its descendants."
                )
            new_nature = changes.get("nature", group.nature)
            if parent.nature != new_nature:
                raise ValidationError(
                    f"Nature '{new_nature}' does not match parent nature '{parent.nature}'."
                )
        group.parent = parent
    elif "nature" in changes and group.parent_id is not None:
        if group.parent.nature != changes["nature"]:
            raise ValidationError(
                f"Nature '{changes['nature']}' does not match parent nature "
                f"'{group.parent.nature}'."
            )

    new_nature = changes.pop("nature", None)
    for field in ("name", "sequence", "affects_gross_profit", "description"):
        if field in changes:
            setattr(group, field, changes.pop(field))
    if changes:
        raise ValidationError(f"Unknown account group fields: {', '.join(changes)}")

    if new_nature is not None and new_nature != group.nature:
        # descendants first so the parent/child check in clean() keeps passing
        _cascade_nature(group, new_nature)
        group.nature = new_nature
    group.save()
    log_action(action="update", instance=group, user=user,
               old_values=old, new_values=snapshot(group))
    return group


def _cascade_nature(group, new_nature):
    ids = descendant_ids(group)
    # queryset update: no per-row clean(), the whole subtree flips at once
    AccountGroup.objects.filter(pk__in=ids).update(nature=new_nature)
    return ids


@transaction.atomic
def change_nature(group, new_nature, user=None):
    """Set ``new_nature`` on ``group`` and all its descendants, atomically."""
    group = AccountGroup.objects.select_for_update().get(pk=group.pk)
    if group.is_system:
        raise ConflictError("System account groups cannot be edited.")
    if group.parent_id is not None and group.parent.nature != new_nature:
        raise ValidationError(
            f"Nature '{new_nature}' does not match parent nature '{group.parent.nature}'."
        )
    old_nature = group.nature
    ids = _cascade_nature(group, new_nature)
    group.nature = new_nature
    group.save()
    log_action(action="change_nature", instance=group, user=user,
               old_values={"nature": old_nature},
               new_values={"nature": new_nature, "descendants": sorted(ids)})
    logger.info(
        "account group nature changed",
        extra={"group": group.pk, "nature": new_nature, "descendants": len(ids)},
    )
    return group


@transaction.atomic
def delete_group(group, user=None):
    group = AccountGroup.objects.select_for_update().get(pk=group.pk)
    if group.is_system:
        raise ConflictError("System account groups cannot be deleted.")
    if group.children.exists():
        raise ConflictError("Cannot delete an account group that has child groups.")
    if group.ledger_accounts.exists():
        raise ConflictError("Cannot delete an account group that has ledger accounts.")
    log_action(action="delete", instance=group, user=user, old_values=snapshot(group))
    group.delete()


# ----------------------------
# Cost centers
# ----------------------------
@transaction.atomic
def create_cost_center(business, name, code=None, parent=None, *,
                       description="", user=None):
    if parent is not None:
        ensure_same_business(business, parent)
    center = CostCenter(
        business=business, name=name, code=code or None,
        parent=parent, description=description,
    )
    center.save()
    log_action(action="create", instance=center, user=user)
    return center


def flatten_cost_centers(business):
    """[(id, name, depth), ...] in pre-order, siblings by name."""
    return [(c.pk, c.name, depth) for c, depth in _walk(_cost_center_arena(business))]


def cost_center_descendant_ids(center):
    children = _cost_center_arena(center.business_id)
    return {node.pk for node, _ in _walk(children, center.pk)}


@transaction.atomic
def move_cost_center(center, parent, user=None):
    if parent is not None:
        ensure_same_business(center.business, parent)
        if parent.pk == center.pk or parent.pk in cost_center_descendant_ids(center):
            raise ValidationError(
                "A cost center cannot be moved under itself or one of its descendants."
            )
    center.parent = parent
    center.save()
    log_action(action="update", instance=center, user=user)
    return center


@transaction.atomic
def delete_cost_center(center, user=None):
    if center.children.exists():
        raise ConflictError("Cannot delete a cost center that has children.")
    if VoucherItem.objects.filter(cost_center=center).exists():
        raise ConflictError("Cannot delete a cost center used by voucher items.")
    log_action(action="delete", instance=center, user=user, old_values=snapshot(center))
    center.delete()


def cost_center_totals(center, start_date=None, end_date=None, financial_year=None):
    """Debit, credit and net (debit - credit) of posted vouchers tagged with ``center``."""
    qs = VoucherItem.objects.filter(cost_center=center, voucher__is_posted=True)
    if start_date is not None:
        qs = qs.filter(voucher__date__gte=start_date)
    if end_date is not None:
        qs = qs.filter(voucher__date__lte=end_date)
    if financial_year is not None:
        qs = qs.filter(voucher__financial_year=financial_year)
    aggs = qs.aggregate(
        debit=models.Sum("debit_amount"),
        credit=models.Sum("credit_amount"),
    )
    debit = aggs["debit"] or Decimal("0.00")
    credit = aggs["credit"] or Decimal("0.00")
    return {"debit": debit, "credit": credit, "net": debit - credit}
