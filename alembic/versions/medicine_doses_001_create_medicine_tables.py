"""create medicines and medicine_doses tables

Revision ID: medicine_doses_001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'medicine_doses_001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create medicines table
    op.create_table(
        'medicines',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('prescription_id', sa.String(), nullable=True),
        sa.Column('medicine_name', sa.String(), nullable=False),
        sa.Column('dosage', sa.String(), nullable=False),
        sa.Column('frequency', sa.String(), nullable=False),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('duration_days', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_medicines_user_id'), 'medicines', ['user_id'], unique=False)
    op.create_index(op.f('ix_medicines_prescription_id'), 'medicines', ['prescription_id'], unique=False)
    op.create_index('idx_medicines_user_active', 'medicines', ['user_id', 'active'], unique=False)

    # Create medicine_doses table
    op.create_table(
        'medicine_doses',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('medicine_id', sa.String(), nullable=False),
        sa.Column('scheduled_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('taken_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['medicine_id'], ['medicines.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('medicine_id', 'scheduled_time', name='uq_medicine_dose_time')
    )
    op.create_index(op.f('ix_medicine_doses_user_id'), 'medicine_doses', ['user_id'], unique=False)
    op.create_index(op.f('ix_medicine_doses_medicine_id'), 'medicine_doses', ['medicine_id'], unique=False)
    op.create_index('idx_medicine_doses_user_scheduled', 'medicine_doses', ['user_id', 'scheduled_time'], unique=False)


def downgrade():
    op.drop_index('idx_medicine_doses_user_scheduled', table_name='medicine_doses')
    op.drop_index(op.f('ix_medicine_doses_medicine_id'), table_name='medicine_doses')
    op.drop_index(op.f('ix_medicine_doses_user_id'), table_name='medicine_doses')
    op.drop_table('medicine_doses')

    op.drop_index('idx_medicines_user_active', table_name='medicines')
    op.drop_index(op.f('ix_medicines_prescription_id'), table_name='medicines')
    op.drop_index(op.f('ix_medicines_user_id'), table_name='medicines')
    op.drop_table('medicines')
