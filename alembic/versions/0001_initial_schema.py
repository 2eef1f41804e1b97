"""initial schema: targets, uptime records, incidents, summaries, logs

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'targets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        sa.Column('current_status', sa.String(), nullable=False),
        sa.Column('last_checked', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_targets_id', 'targets', ['id'])
    op.create_index('ix_targets_name', 'targets', ['name'], unique=True)

    op.create_table(
        'uptime_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('target_id', sa.Integer(), sa.ForeignKey('targets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('status_code', sa.Integer(), nullable=True),
        sa.Column('is_up', sa.Boolean(), nullable=False),
        sa.Column('latency_ms', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.String(), nullable=True),
    )
    op.create_index('idx_uptime_target_time', 'uptime_records', ['target_id', 'timestamp'])

    op.create_table(
        'downtime_incidents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('target_id', sa.Integer(), sa.ForeignKey('targets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(), nullable=True),
    )
    op.create_index('ix_downtime_incidents_id', 'downtime_incidents', ['id'])
    op.create_index('idx_incidents_target', 'downtime_incidents', ['target_id'])
    op.create_index(
        'uq_incidents_open_per_target',
        'downtime_incidents',
        ['target_id'],
        unique=True,
        sqlite_where=sa.text('end_time IS NULL'),
        postgresql_where=sa.text('end_time IS NULL'),
    )

    op.create_table(
        'daily_summaries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('target_id', sa.Integer(), sa.ForeignKey('targets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('total_checks', sa.Integer(), nullable=True),
        sa.Column('successful_checks', sa.Integer(), nullable=True),
        sa.Column('failed_checks', sa.Integer(), nullable=True),
        sa.Column('uptime_percentage', sa.Float(), nullable=True),
        sa.Column('avg_latency_ms', sa.Float(), nullable=True),
        sa.Column('min_latency_ms', sa.Integer(), nullable=True),
        sa.Column('max_latency_ms', sa.Integer(), nullable=True),
        sa.Column('downtime_minutes', sa.Integer(), nullable=True),
        sa.Column('incident_count', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('target_id', 'date', name='uq_daily_summaries_target_date'),
    )

    op.create_table(
        'notification_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('notification_id', sa.String(), nullable=False, unique=True),
        sa.Column('target_id', sa.Integer(), sa.ForeignKey('targets.id', ondelete='CASCADE'), nullable=True),
        sa.Column('channel', sa.String(), nullable=False),
        sa.Column('message', sa.String(), nullable=True),
        sa.Column('severity', sa.String(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(), nullable=True),
    )
    op.create_index('ix_notification_logs_target_id', 'notification_logs', ['target_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('old_value', sa.String(), nullable=True),
        sa.Column('new_value', sa.String(), nullable=True),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('notification_logs')
    op.drop_table('daily_summaries')
    op.drop_index('uq_incidents_open_per_target', table_name='downtime_incidents')
    op.drop_table('downtime_incidents')
    op.drop_index('idx_uptime_target_time', table_name='uptime_records')
    op.drop_table('uptime_records')
    op.drop_table('targets')
