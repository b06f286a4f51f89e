"""Initial projection schema

Revision ID: a1c3e5f7b9d1
Revises:
Create Date: 2026-01-15 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'a1c3e5f7b9d1'
down_revision = None
branch_labels = None
depends_on = None


bank_provider = postgresql.ENUM('HALIFAX', 'METTLE', 'OTHER', name='bankprovider', create_type=False)
event_type = postgresql.ENUM('EXPENSE', 'INCOMING', name='eventtype', create_type=False)
certainty_level = postgresql.ENUM(
    'UNLIKELY', 'POSSIBLE', 'LIKELY', 'CERTAIN', name='certaintylevel', create_type=False
)
recurrence_frequency = postgresql.ENUM(
    'DAILY', 'WEEKLY', 'MONTHLY', 'QUARTERLY', 'BIANNUAL', 'ANNUAL',
    name='recurrencefrequency', create_type=False
)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (bank_provider, event_type, certainty_level, recurrence_frequency):
        enum_type.create(bind, checkfirst=True)

    # =========================================================================
    # Bank Accounts
    # =========================================================================
    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_code', sa.String(), nullable=False),
        sa.Column('account_number', sa.String(), nullable=False),
        sa.Column('provider', bank_provider, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sort_code', 'account_number', name='uq_bank_accounts_sort_code_number'),
    )

    # =========================================================================
    # Decision Paths & Scenario Sets
    # =========================================================================
    op.create_table(
        'decision_paths',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'scenario_sets',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_scenario_sets_is_default', 'scenario_sets', ['is_default'])

    op.create_table(
        'scenario_set_decision_paths',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('scenario_set_id', sa.String(), nullable=False),
        sa.Column('decision_path_id', sa.String(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['scenario_set_id'], ['scenario_sets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['decision_path_id'], ['decision_paths.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scenario_set_id', 'decision_path_id', name='uq_scenario_set_path'),
    )
    op.create_index('ix_scenario_set_paths_path', 'scenario_set_decision_paths', ['decision_path_id'])

    # =========================================================================
    # Recurring Event Rules
    # Revisions point at their root rule through base_rule_id
    # =========================================================================
    op.create_table(
        'recurring_event_rules',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('value', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('type', event_type, nullable=False),
        sa.Column('certainty', certainty_level, nullable=False),
        sa.Column('pay_to', sa.String(), nullable=True),
        sa.Column('paid_by', sa.String(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('frequency', recurrence_frequency, nullable=False),
        sa.Column('bank_account_id', sa.String(), nullable=False),
        sa.Column('decision_path_id', sa.String(), nullable=True),
        sa.Column('is_base_rule', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('base_rule_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['decision_path_id'], ['decision_paths.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['base_rule_id'], ['recurring_event_rules.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_recurring_event_rules_start_date', 'recurring_event_rules', ['start_date'])
    op.create_index('ix_recurring_event_rules_bank_account_id', 'recurring_event_rules', ['bank_account_id'])
    op.create_index('ix_recurring_event_rules_decision_path_id', 'recurring_event_rules', ['decision_path_id'])
    op.create_index('ix_recurring_event_rules_base_rule_id', 'recurring_event_rules', ['base_rule_id'])
    op.create_index('ix_recurring_rules_account_start', 'recurring_event_rules', ['bank_account_id', 'start_date'])

    # =========================================================================
    # Projected Events
    # =========================================================================
    op.create_table(
        'projected_events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('value', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('type', event_type, nullable=False),
        sa.Column('certainty', certainty_level, nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('pay_to', sa.String(), nullable=True),
        sa.Column('paid_by', sa.String(), nullable=True),
        sa.Column('bank_account_id', sa.String(), nullable=False),
        sa.Column('decision_path_id', sa.String(), nullable=True),
        sa.Column('recurring_rule_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['decision_path_id'], ['decision_paths.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['recurring_rule_id'], ['recurring_event_rules.id'], ondelete='CASCADE'),
        sa.CheckConstraint('value > 0', name='ck_projected_events_value_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_projected_events_account_date', 'projected_events', ['bank_account_id', 'date'])
    op.create_index('ix_projected_events_decision_path_id', 'projected_events', ['decision_path_id'])
    op.create_index('ix_projected_events_recurring_rule_id', 'projected_events', ['recurring_rule_id'])

    # =========================================================================
    # Transaction Records
    # sequence keeps statement order within a day
    # =========================================================================
    op.create_table(
        'transaction_records',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('bank_account_id', sa.String(), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('transaction_type', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('debit_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('credit_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_transaction_records_account_date', 'transaction_records', ['bank_account_id', 'transaction_date']
    )

    # =========================================================================
    # Daily Balances (cache)
    # =========================================================================
    op.create_table(
        'daily_balances',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('bank_account_id', sa.String(), nullable=False),
        sa.Column('expected_balance', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'bank_account_id', name='uq_daily_balances_date_account'),
    )

    # =========================================================================
    # Audit Logs
    # =========================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('field_name', sa.String(), nullable=True),
        sa.Column('old_value', sa.JSON(), nullable=True),
        sa.Column('new_value', sa.JSON(), nullable=True),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_log_entity', 'audit_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_log_entity_action', 'audit_logs', ['entity_type', 'action'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('daily_balances')
    op.drop_table('transaction_records')
    op.drop_table('projected_events')
    op.drop_table('recurring_event_rules')
    op.drop_table('scenario_set_decision_paths')
    op.drop_table('scenario_sets')
    op.drop_table('decision_paths')
    op.drop_table('bank_accounts')

    bind = op.get_bind()
    for enum_type in (recurrence_frequency, certainty_level, event_type, bank_provider):
        enum_type.drop(bind, checkfirst=True)
