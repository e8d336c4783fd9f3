"""initial tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

course_group_status = sa.Enum('PLANNED', 'ACTIVE', 'CLOSED', name='course_group_status')
course_group_type = sa.Enum('REGULAR', 'INTENSIVE', name='course_group_type')
payment_status = sa.Enum('PENDING', 'PAID', 'FAILED', name='payment_status')
request_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='request_status')
day_of_week = sa.Enum('MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY', 'SUNDAY',
                      name='day_of_week')


def _account_table(name, *extra):
    op.create_table(name,
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(150), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        *extra,
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index(f'ix_{name}_email', name, ['email'], unique=True)


def upgrade():
    _account_table('student', sa.Column('major', sa.String(100), nullable=False))
    op.create_index('ix_student_major', 'student', ['major'])
    _account_table('teacher')
    _account_table('admin')

    op.create_table('login_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('account_role', sa.String(16), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(64), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_login_session_account', 'login_session', ['account_role', 'account_id'])

    op.create_table('subject',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('major', sa.String(100), nullable=False),
        sa.Column('course_year', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('name', 'major', name='uq_subject_name_major'),
    )
    op.create_index('ix_subject_major', 'subject', ['major'])

    op.create_table('course_group',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('subject_id', sa.Integer(), sa.ForeignKey('subject.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teacher.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', course_group_status, nullable=False),
        sa.Column('type', course_group_type, nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('max_capacity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('max_capacity >= 1', name='ck_course_group_capacity'),
        sa.CheckConstraint('price > 0', name='ck_course_group_price'),
    )
    op.create_index('ix_course_group_subject_id', 'course_group', ['subject_id'])
    op.create_index('ix_course_group_teacher_id', 'course_group', ['teacher_id'])
    op.create_index('ix_course_group_status_capacity', 'course_group', ['status', 'max_capacity'])

    op.create_table('group_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_group_id', sa.Integer(), sa.ForeignKey('course_group.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', day_of_week, nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('classroom', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('course_group_id', 'day_of_week', 'start_time', name='uq_session_group_day_start'),
        sa.CheckConstraint('start_time < end_time', name='ck_session_time_range'),
    )
    op.create_index('ix_session_classroom_day', 'group_session', ['classroom', 'day_of_week'])

    op.create_table('enrollment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('student.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('course_group_id', sa.Integer(), sa.ForeignKey('course_group.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('enrollment_date', sa.DateTime(), nullable=False),
        sa.Column('payment_status', payment_status, nullable=False),
        sa.UniqueConstraint('student_id', 'course_group_id', name='uq_enrollment_student_group'),
    )
    op.create_index('ix_enrollment_student_id', 'enrollment', ['student_id'])
    op.create_index('ix_enrollment_course_group_id', 'enrollment', ['course_group_id'])

    op.create_table('group_request',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('student.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('subject_id', sa.Integer(), sa.ForeignKey('subject.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('request_date', sa.DateTime(), nullable=False),
        sa.Column('status', request_status, nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('admin_comment', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_group_request_student_id', 'group_request', ['student_id'])
    op.create_index('ix_group_request_subject_id', 'group_request', ['subject_id'])
    op.create_index('ix_group_request_status', 'group_request', ['status'])

    # частичный уникальный индекс: одна PENDING-заявка на (student, subject)
    dialect = op.get_bind().dialect.name
    if dialect in ("sqlite", "postgresql"):
        op.create_index('uq_group_request_pending', 'group_request', ['student_id', 'subject_id'], unique=True,
                        sqlite_where=sa.text("status = 'PENDING'"),
                        postgresql_where=sa.text("status = 'PENDING'"))


def downgrade():
    dialect = op.get_bind().dialect.name
    if dialect in ("sqlite", "postgresql"):
        op.drop_index('uq_group_request_pending', table_name='group_request')
    for table in ('group_request', 'enrollment', 'group_session', 'course_group', 'subject',
                  'login_session', 'admin', 'teacher', 'student'):
        op.drop_table(table)
    if dialect != "sqlite":
        bind = op.get_bind()
        for enum in (day_of_week, request_status, payment_status, course_group_type, course_group_status):
            enum.drop(bind, checkfirst=True)
