"""Create yard tables

Revision ID: create_yard_tables_001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'create_yard_tables_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create trucks table
    op.create_table(
        'trucks',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('truck_number', sa.String(30), nullable=False),
        sa.Column('vehicle_number', sa.String(30), nullable=False),
        sa.Column('driver_name', sa.String(100), nullable=False),
        sa.Column('driver_mobile', sa.String(20), nullable=True),
        sa.Column('driver_license', sa.String(50), nullable=True),
        sa.Column('transporter', sa.String(100), nullable=True),
        sa.Column('depot_name', sa.String(100), nullable=True),
        sa.Column('material_type', sa.String(10), nullable=False, server_default='RM', comment='FG, RM, PM, other'),
        sa.Column('supplier_name', sa.String(150), nullable=True),
        sa.Column('lr_number', sa.String(50), nullable=True),
        sa.Column('rto_capacity', sa.String(30), nullable=True),
        sa.Column('loading_capacity', sa.String(30), nullable=True),
        sa.Column('gate', sa.String(30), nullable=True),
        sa.Column('arrival_date_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Upcoming',
                  comment='Upcoming, At Gate, Inside, Exited, Deleted'),
        sa.Column('entry_status', sa.String(20), nullable=True, comment='allowed, held, external_parking'),
        sa.Column('entry_approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('entry_approved_by', sa.String(64), nullable=True),
        sa.Column('reason_for_hold', sa.Text(), nullable=True),
        sa.Column('held_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('held_by', sa.String(64), nullable=True),
        sa.Column('external_parking_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('external_parking_by', sa.String(64), nullable=True),
        sa.Column('channel_type', sa.String(10), nullable=True),
        sa.Column('dock_assigned', sa.String(50), nullable=True),
        sa.Column('dock_status', sa.String(20), nullable=True),
        sa.Column('planned_destination', sa.String(50), nullable=True),
        sa.Column('next_milestone', sa.String(20), nullable=True, comment='WeighBridge, InternalParking'),
        sa.Column('sent_to_weighbridge_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_to_weighbridge_by', sa.String(64), nullable=True),
        sa.Column('processing_draft', postgresql.JSONB(), nullable=True),
        sa.Column('processing_data', postgresql.JSONB(), nullable=True),
        sa.Column('weight_data', postgresql.JSONB(), nullable=True),
        sa.Column('weighbridge_processing_complete', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('weighbridge_processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('weighbridge_processed_by', sa.String(64), nullable=True),
        sa.Column('issued_wheel_choke', postgresql.JSONB(), nullable=True),
        sa.Column('issued_safety_shoe', postgresql.JSONB(), nullable=True),
        sa.Column('outgoing_registers', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('exited_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('exited_by', sa.String(64), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_by', sa.String(64), nullable=True),
        sa.Column('status_before_delete', sa.String(20), nullable=True),
        sa.Column('restored_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('restored_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('last_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_updated_by', sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_trucks_truck_number', 'trucks', ['truck_number'])
    op.create_index('ix_trucks_vehicle_number', 'trucks', ['vehicle_number'])
    op.create_index('ix_trucks_status', 'trucks', ['status'])
    op.create_index('ix_trucks_dock_assigned', 'trucks', ['dock_assigned'])
    op.create_index('ix_trucks_is_deleted', 'trucks', ['is_deleted'])
    op.create_index('ix_trucks_status_arrival', 'trucks', ['status', 'arrival_date_time'])
    op.create_index('ix_trucks_status_milestone', 'trucks', ['status', 'next_milestone'])

    # Create approval_requests table
    op.create_table(
        'approval_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('request_number', sa.String(30), nullable=False, comment='Auto-generated: APR-YYYYMMDD-XXXX'),
        sa.Column('truck_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vehicle_number', sa.String(30), nullable=True),
        sa.Column('driver_name', sa.String(100), nullable=True),
        sa.Column('request_type', sa.String(30), nullable=False,
                  comment='documentsIncomplete, safetyChecks, weightDiscrepancy'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending',
                  comment='pending, approved, rejected'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('payload', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('requested_by', sa.String(64), nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('decided_by', sa.String(64), nullable=True),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decision_comments', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['truck_id'], ['trucks.id'], ondelete='RESTRICT'),
    )
    op.create_index('ix_approval_requests_request_number', 'approval_requests', ['request_number'], unique=True)
    op.create_index('ix_approval_requests_truck_id', 'approval_requests', ['truck_id'])
    op.create_index('ix_approval_requests_request_type', 'approval_requests', ['request_type'])
    op.create_index('ix_approval_requests_status', 'approval_requests', ['status'])
    op.create_index('ix_approval_truck_type_status', 'approval_requests', ['truck_id', 'request_type', 'status'])

    # Create weight_records table
    op.create_table(
        'weight_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('truck_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('weight_number', sa.String(1), nullable=False, comment='1, 2, 3, 4'),
        sa.Column('material_type', sa.String(5), nullable=False),
        sa.Column('weight', sa.Numeric(12, 2), nullable=False),
        sa.Column('recorded_by', sa.String(64), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['truck_id'], ['trucks.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('truck_id', 'weight_number', name='uq_weight_record_truck_slot'),
    )
    op.create_index('ix_weight_records_truck_id', 'weight_records', ['truck_id'])

    # Create settings tables
    op.create_table(
        'settings_documents',
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('data', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_by', sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint('name'),
    )
    op.create_table(
        'safety_equipment_inventory',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wheel_choke_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('safety_shoe_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('issued_wheel_chokes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('issued_safety_shoes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_by', sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('issued_wheel_chokes >= 0', name='ck_inventory_issued_chokes'),
        sa.CheckConstraint('issued_safety_shoes >= 0', name='ck_inventory_issued_shoes'),
    )

    # Create equipment_issuance_logs table
    op.create_table(
        'equipment_issuance_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('truck_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vehicle_number', sa.String(30), nullable=True),
        sa.Column('equipment_type', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, comment='Issued quantity after this change'),
        sa.Column('delta', sa.Integer(), nullable=False, comment='Change applied to the inventory'),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('issued_by', sa.String(64), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['truck_id'], ['trucks.id'], ondelete='RESTRICT'),
    )
    op.create_index('ix_equipment_issuance_logs_truck_id', 'equipment_issuance_logs', ['truck_id'])


def downgrade() -> None:
    op.drop_index('ix_equipment_issuance_logs_truck_id', table_name='equipment_issuance_logs')
    op.drop_table('equipment_issuance_logs')

    op.drop_table('safety_equipment_inventory')
    op.drop_table('settings_documents')

    op.drop_index('ix_weight_records_truck_id', table_name='weight_records')
    op.drop_table('weight_records')

    op.drop_index('ix_approval_truck_type_status', table_name='approval_requests')
    op.drop_index('ix_approval_requests_status', table_name='approval_requests')
    op.drop_index('ix_approval_requests_request_type', table_name='approval_requests')
    op.drop_index('ix_approval_requests_truck_id', table_name='approval_requests')
    op.drop_index('ix_approval_requests_request_number', table_name='approval_requests')
    op.drop_table('approval_requests')

    op.drop_index('ix_trucks_status_milestone', table_name='trucks')
    op.drop_index('ix_trucks_status_arrival', table_name='trucks')
    op.drop_index('ix_trucks_is_deleted', table_name='trucks')
    op.drop_index('ix_trucks_dock_assigned', table_name='trucks')
    op.drop_index('ix_trucks_status', table_name='trucks')
    op.drop_index('ix_trucks_vehicle_number', table_name='trucks')
    op.drop_index('ix_trucks_truck_number', table_name='trucks')
    op.drop_table('trucks')
