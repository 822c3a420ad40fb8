"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so services never see ORM rows.
"""

from decimal import Decimal

from sortit.domain import entities as domain
from sortit.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    CategorizationRule as ORMRule,
    PayeeMapping as ORMPayeeMapping,
    AuditLogEntry as ORMAuditLogEntry,
    Batch as ORMBatch,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        provider=orm_transaction.provider,
        provider_transaction_id=orm_transaction.provider_transaction_id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        amount=Decimal(orm_transaction.amount),
        description_raw=orm_transaction.description_raw,
        description_clean=orm_transaction.description_clean,
        counterparty_name=orm_transaction.counterparty_name,
        category_id=orm_transaction.category_id,
        category_source=orm_transaction.category_source,
        category_locked=bool(orm_transaction.category_locked),
        confidence=orm_transaction.confidence,
        applied_rule_id=orm_transaction.applied_rule_id,
        is_transfer=bool(orm_transaction.is_transfer),
        is_pass_through=bool(orm_transaction.is_pass_through),
        is_business=bool(orm_transaction.is_business),
        parent_transaction_id=orm_transaction.parent_transaction_id,
        is_split_parent=bool(orm_transaction.is_split_parent),
        is_split_child=bool(orm_transaction.is_split_child),
        reimbursement_of_id=orm_transaction.reimbursement_of_id,
        imported_at=orm_transaction.imported_at,
        updated_at=orm_transaction.updated_at,
    )


def rule_to_domain(orm_rule: ORMRule) -> domain.CategorizationRule:
    """Convert SQLAlchemy CategorizationRule model to domain entity."""
    return domain.CategorizationRule(
        id=orm_rule.id,
        name=orm_rule.name,
        description=orm_rule.description,
        priority=orm_rule.priority,
        is_active=bool(orm_rule.is_active),
        match_merchant_contains=orm_rule.match_merchant_contains,
        match_merchant_exact=orm_rule.match_merchant_exact,
        match_amount_min=(
            Decimal(orm_rule.match_amount_min) if orm_rule.match_amount_min is not None else None
        ),
        match_amount_max=(
            Decimal(orm_rule.match_amount_max) if orm_rule.match_amount_max is not None else None
        ),
        match_account_id=orm_rule.match_account_id,
        match_direction=orm_rule.match_direction,
        category_id=orm_rule.category_id,
        assign_is_transfer=orm_rule.assign_is_transfer,
        assign_is_pass_through=orm_rule.assign_is_pass_through,
        created_at=orm_rule.created_at,
        updated_at=orm_rule.updated_at,
    )


def payee_mapping_to_domain(orm_mapping: ORMPayeeMapping) -> domain.PayeeMapping:
    """Convert SQLAlchemy PayeeMapping model to domain entity."""
    return domain.PayeeMapping(
        id=orm_mapping.id,
        payee_name=orm_mapping.payee_name,
        category_id=orm_mapping.category_id,
        usage_count=orm_mapping.usage_count,
        confidence=orm_mapping.confidence,
        last_used_at=orm_mapping.last_used_at,
        created_at=orm_mapping.created_at,
    )


def audit_entry_to_domain(orm_entry: ORMAuditLogEntry) -> domain.AuditLogEntry:
    """Convert SQLAlchemy AuditLogEntry model to domain entity."""
    return domain.AuditLogEntry(
        id=orm_entry.id,
        transaction_id=orm_entry.transaction_id,
        previous_category_id=orm_entry.previous_category_id,
        new_category_id=orm_entry.new_category_id,
        change_source=orm_entry.change_source,
        rule_id=orm_entry.rule_id,
        confidence_score=orm_entry.confidence_score,
        changed_by=orm_entry.changed_by,
        batch_id=orm_entry.batch_id,
        notes=orm_entry.notes,
        is_reverted=bool(orm_entry.is_reverted),
        created_at=orm_entry.created_at,
    )


def batch_to_domain(orm_batch: ORMBatch) -> domain.Batch:
    """Convert SQLAlchemy Batch model to domain entity."""
    return domain.Batch(
        id=orm_batch.id,
        rule_id=orm_batch.rule_id,
        operation_type=orm_batch.operation_type,
        description=orm_batch.description,
        created_by=orm_batch.created_by,
        applied_at=orm_batch.applied_at,
        transaction_count=orm_batch.transaction_count,
        date_range_start=orm_batch.date_range_start,
        date_range_end=orm_batch.date_range_end,
        is_undone=bool(orm_batch.is_undone),
        undone_at=orm_batch.undone_at,
    )
