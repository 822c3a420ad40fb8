"""SQLAlchemy models for sortit database."""

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Float,
    Index,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

from sortit.domain.entities import utcnow

Base = declarative_base()


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="account")


class Category(Base):
    """Category model with hierarchical structure."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")


class Transaction(Base):
    """Transaction model.

    Identity columns come from the ingestion side and are not changed by the
    categorization engine; everything from category_id down is mutable state.
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    provider = Column(String, nullable=False, default="manual")
    provider_transaction_id = Column(String, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description_raw = Column(String, nullable=True)
    description_clean = Column(String, nullable=True)
    counterparty_name = Column(String, nullable=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    category_source = Column(String, nullable=True)
    category_locked = Column(Boolean, default=False, nullable=False)
    confidence = Column(Float, nullable=True)
    applied_rule_id = Column(Integer, nullable=True)

    is_transfer = Column(Boolean, default=False, nullable=False)
    is_pass_through = Column(Boolean, default=False, nullable=False)
    is_business = Column(Boolean, default=False, nullable=False)

    parent_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    is_split_parent = Column(Boolean, default=False, nullable=False)
    is_split_child = Column(Boolean, default=False, nullable=False)
    reimbursement_of_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)

    imported_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=True)

    __table_args__ = (
        UniqueConstraint("account_id", "provider_transaction_id", name="uq_account_provider_txn"),
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_parent", "parent_transaction_id"),
    )

    # Relationships
    account = relationship("Account", back_populates="transactions")
    category = relationship("Category")


class CategorizationRule(Base):
    """Categorization rule model."""

    __tablename__ = "categorization_rules"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    match_merchant_contains = Column(String, nullable=True)
    match_merchant_exact = Column(String, nullable=True)
    match_amount_min = Column(Numeric(12, 2), nullable=True)
    match_amount_max = Column(Numeric(12, 2), nullable=True)
    match_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    match_direction = Column(String, nullable=False, default="any")
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    assign_is_transfer = Column(Boolean, nullable=True)
    assign_is_pass_through = Column(Boolean, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=True)


class PayeeMapping(Base):
    """Learned payee to category mapping, keyed by normalized payee name."""

    __tablename__ = "payee_mappings"

    id = Column(Integer, primary_key=True)
    payee_name = Column(String, unique=True, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    usage_count = Column(Integer, nullable=False, default=1)
    confidence = Column(Float, nullable=False, default=1.0)
    last_used_at = Column(DateTime, default=utcnow, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Batch(Base):
    """Group of category mutations that can be undone together."""

    __tablename__ = "batches"

    id = Column(Integer, primary_key=True)
    rule_id = Column(Integer, nullable=True)
    operation_type = Column(String, nullable=False)
    description = Column(String, nullable=True)
    created_by = Column(String, nullable=False, default="system")
    applied_at = Column(DateTime, default=utcnow, nullable=False)
    transaction_count = Column(Integer, nullable=False, default=0)
    date_range_start = Column(Date, nullable=True)
    date_range_end = Column(Date, nullable=True)
    is_undone = Column(Boolean, nullable=False, default=False)
    undone_at = Column(DateTime, nullable=True)


class AuditLogEntry(Base):
    """Append-only category change log.

    transaction_id has no foreign key so history outlives deleted split children.
    """

    __tablename__ = "category_audit_log"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, nullable=False)
    previous_category_id = Column(Integer, nullable=True)
    new_category_id = Column(Integer, nullable=True)
    change_source = Column(String, nullable=False)
    rule_id = Column(Integer, nullable=True)
    confidence_score = Column(Float, nullable=True)
    changed_by = Column(String, nullable=False, default="system")
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=True)
    notes = Column(String, nullable=True)
    is_reverted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_audit_transaction", "transaction_id"),
        Index("ix_audit_batch", "batch_id"),
    )


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
