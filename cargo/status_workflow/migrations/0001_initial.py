import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

PACKAGE_STATUS_CHOICES = [
    ('pending_arrival', 'Pending Arrival'), ('arrived', 'Arrived'), ('inspected', 'Inspected'),
    ('ready_for_review', 'Ready for Review'), ('pending_action', 'Pending Action'), ('approved', 'Approved'),
    ('consolidated', 'Consolidated'), ('on_hold', 'On Hold'), ('ready_for_shipment', 'Ready for Shipment'),
    ('shipped', 'Shipped'), ('in_transit', 'In Transit'), ('customs_clearance', 'Customs Clearance'),
    ('out_for_delivery', 'Out for Delivery'), ('delivered', 'Delivered'), ('returned', 'Returned'),
    ('lost', 'Lost'), ('damaged', 'Damaged'),
]

SHIPMENT_STATUS_CHOICES = [
    ('awaiting_quote', 'Awaiting Quote'), ('quote_ready', 'Quote Ready'), ('payment_pending', 'Payment Pending'),
    ('processing', 'Processing'), ('shipped', 'Shipped'), ('arrived', 'Arrived'), ('in_transit', 'In Transit'),
    ('customs_clearance', 'Customs Clearance'), ('out_for_delivery', 'Out for Delivery'),
    ('delivered', 'Delivered'), ('cancelled', 'Cancelled'), ('pending', 'Pending'), ('received', 'Received'),
    ('transit', 'Transit'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Package',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tracking_number', models.CharField(help_text='Customer-facing tracking identifier', max_length=50, unique=True)),
                ('status_changed_at', models.DateTimeField(default=django.utils.timezone.now, help_text='When the current status was set')),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('status', models.CharField(choices=PACKAGE_STATUS_CHOICES, default='pending_arrival', help_text='Current package status', max_length=30)),
                ('description', models.CharField(blank=True, help_text='Declared package contents', max_length=255)),
                ('weight', models.DecimalField(blank=True, decimal_places=2, help_text='Package weight in kg', max_digits=8, null=True)),
                ('user', models.ForeignKey(help_text='Customer who owns this package', on_delete=django.db.models.deletion.CASCADE, related_name='packages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'status_changed_at'], name='pkg_status_changed_idx'),
                    models.Index(fields=['user', 'status'], name='pkg_user_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Shipment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tracking_number', models.CharField(help_text='Customer-facing tracking identifier', max_length=50, unique=True)),
                ('status_changed_at', models.DateTimeField(default=django.utils.timezone.now, help_text='When the current status was set')),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('status', models.CharField(choices=SHIPMENT_STATUS_CHOICES, default='awaiting_quote', help_text='Current shipment status', max_length=30)),
                ('packages', models.ManyToManyField(blank=True, help_text='Packages consolidated into this shipment', related_name='shipments', to='status_workflow.package')),
                ('user', models.ForeignKey(help_text='Customer who requested this shipment', on_delete=django.db.models.deletion.CASCADE, related_name='shipments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'status_changed_at'], name='shp_status_changed_idx'),
                    models.Index(fields=['user', 'status'], name='shp_user_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StatusAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('entity_type', models.CharField(help_text='Entity kind (package or shipment)', max_length=20)),
                ('entity_id', models.UUIDField(help_text='UUID of the entity being audited')),
                ('action', models.CharField(default='status_changed', help_text='Action performed', max_length=50)),
                ('actor_role', models.CharField(blank=True, max_length=20)),
                ('old_values', models.JSONField(blank=True, default=dict)),
                ('new_values', models.JSONField(blank=True, default=dict)),
                ('rule', models.TextField(blank=True, help_text='Business rule that justified the transition')),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Additional audit metadata such as automation results')),
                ('user', models.ForeignKey(blank=True, help_text='User who performed the action', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='status_audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['entity_type', 'entity_id', '-timestamp'], name='audit_entity_ts_idx'),
                    models.Index(fields=['user', '-timestamp'], name='audit_user_ts_idx'),
                ],
            },
        ),
    ]
