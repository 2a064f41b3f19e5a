"""
Initial migration for warehouse models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create warehouse models: Material, Reservation, Move, AuditLogEntry."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Material',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('unit', models.CharField(default='pcs', help_text='Unit of measure, e.g. sheets, m2, kg', max_length=20, verbose_name='Unit')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantity on hand')),
                ('min_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Reorder threshold', max_digits=12, verbose_name='Minimum quantity')),
                ('price_per_unit', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Price per unit')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Material',
                'verbose_name_plural': 'Materials',
                'db_table': 'materials',
                'ordering': ['name'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(quantity__gte=0), name='material_quantity_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.PositiveIntegerField(blank=True, db_index=True, null=True, verbose_name='Order')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantity')),
                ('status', models.CharField(choices=[('reserved', 'Reserved'), ('confirmed', 'Confirmed'), ('cancelled', 'Cancelled'), ('expired', 'Expired')], db_index=True, default='reserved', max_length=20, verbose_name='Status')),
                ('reason', models.CharField(max_length=255, verbose_name='Reason')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(db_index=True, help_text='Past this moment the hold no longer counts against availability', verbose_name='Expires at')),
                ('resolved_at', models.DateTimeField(blank=True, help_text='When the reservation was confirmed, cancelled or expired', null=True, verbose_name='Resolved at')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reservations', to='warehouse.material', verbose_name='Material')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Reservation',
                'verbose_name_plural': 'Reservations',
                'db_table': 'material_reservations',
                'indexes': [
                    models.Index(fields=['material', 'status', 'expires_at'], name='reservation_material_active'),
                    models.Index(fields=['status', 'expires_at'], name='reservation_status_expiry'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(quantity__gt=0), name='reservation_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Move',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delta', models.DecimalField(decimal_places=3, help_text='Positive = stock in, negative = stock out', max_digits=12, verbose_name='Delta')),
                ('reason', models.CharField(help_text='Required. E.g. "Print job #123", "Stock count"', max_length=255, verbose_name='Reason')),
                ('order_id', models.PositiveIntegerField(blank=True, db_index=True, null=True, verbose_name='Order')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='moves', to='warehouse.material', verbose_name='Material')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Move',
                'verbose_name_plural': 'Moves',
                'db_table': 'material_moves',
                'ordering': ['created_at', 'pk'],
                'indexes': [
                    models.Index(fields=['material', 'created_at'], name='move_material_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AuditLogEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('operation_type', models.CharField(choices=[('spend', 'Spend'), ('add', 'Add'), ('adjust', 'Adjust'), ('reserve', 'Reserve'), ('unreserve', 'Unreserve'), ('expire', 'Expire')], db_index=True, max_length=20, verbose_name='Operation')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Requested quantity')),
                ('old_quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Before')),
                ('new_quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='After')),
                ('reason', models.CharField(max_length=255, verbose_name='Reason')),
                ('order_id', models.PositiveIntegerField(blank=True, db_index=True, null=True, verbose_name='Order')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_entries', to='warehouse.material', verbose_name='Material')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Audit log entry',
                'verbose_name_plural': 'Audit log',
                'db_table': 'warehouse_audit_log',
                'indexes': [
                    models.Index(fields=['material', 'created_at'], name='audit_material_created'),
                ],
            },
        ),
    ]
