import uuid

from django.db import migrations, models


def _id_field():
    return (
        "id",
        models.BigAutoField(
            auto_created=True,
            primary_key=True,
            serialize=False,
            verbose_name="ID",
        ),
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="CompanyModule",
            fields=[
                _id_field(),
                ("company_id", models.CharField(max_length=64)),
                ("module_id", models.CharField(max_length=64)),
                ("is_enabled", models.BooleanField(default=False)),
                (
                    "pricing_tier",
                    models.CharField(
                        choices=[
                            ("standard", "Standard"),
                            ("custom", "Custom"),
                            ("enterprise", "Enterprise"),
                        ],
                        default="standard",
                        max_length=20,
                    ),
                ),
                ("monthly_price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("per_user_price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("users_licensed", models.PositiveIntegerField(default=0)),
                ("enabled_by", models.CharField(max_length=255)),
                ("enabled_at", models.DateTimeField()),
                ("billing_notes", models.TextField(blank=True, default="")),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "ent_company_modules",
                "ordering": ["company_id", "module_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company_id", "module_id"),
                        name="uq_company_module",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserDataPermission",
            fields=[
                _id_field(),
                ("user_id", models.CharField(max_length=64)),
                ("company_id", models.CharField(max_length=64)),
                ("permission_key", models.CharField(max_length=100)),
                ("is_granted", models.BooleanField(default=True)),
                ("granted_by", models.CharField(max_length=255)),
                ("granted_at", models.DateTimeField()),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("reason", models.TextField(blank=True, default="")),
            ],
            options={
                "db_table": "ent_user_data_permissions",
                "ordering": ["company_id", "user_id", "permission_key"],
                "indexes": [
                    models.Index(fields=["company_id", "user_id"], name="idx_udp_company_user"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "company_id", "permission_key"),
                        name="uq_user_data_permission",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserModule",
            fields=[
                _id_field(),
                ("user_id", models.CharField(max_length=64)),
                ("company_id", models.CharField(max_length=64)),
                ("module_id", models.CharField(max_length=64)),
                ("is_enabled", models.BooleanField(default=True)),
                ("granted_by", models.CharField(max_length=255)),
                ("granted_at", models.DateTimeField()),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "ent_user_modules",
                "ordering": ["company_id", "user_id", "module_id"],
                "indexes": [
                    models.Index(fields=["company_id", "module_id"], name="idx_um_company_module"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "company_id", "module_id"),
                        name="uq_user_module",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserModulePermission",
            fields=[
                _id_field(),
                ("user_id", models.CharField(max_length=64)),
                ("company_id", models.CharField(max_length=64)),
                ("module_id", models.CharField(max_length=64)),
                ("permission_key", models.CharField(max_length=100)),
                ("is_granted", models.BooleanField(default=True)),
                ("granted_by", models.CharField(max_length=255)),
                ("granted_at", models.DateTimeField()),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "ent_user_module_permissions",
                "ordering": ["company_id", "user_id", "module_id", "permission_key"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "company_id", "module_id", "permission_key"),
                        name="uq_user_module_permission",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PermissionChangeAudit",
            fields=[
                (
                    "record_id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("actor_user_id", models.CharField(max_length=64)),
                ("affected_user_id", models.CharField(blank=True, max_length=64, null=True)),
                ("company_id", models.CharField(max_length=64)),
                (
                    "change_type",
                    models.CharField(
                        choices=[
                            ("grant_data_permission", "Grant data permission"),
                            ("revoke_data_permission", "Revoke data permission"),
                            ("grant_module", "Grant module"),
                            ("revoke_module", "Revoke module"),
                            ("grant_module_permission", "Grant module permission"),
                            ("revoke_module_permission", "Revoke module permission"),
                            ("provision_module", "Provision module"),
                            ("deprovision_module", "Deprovision module"),
                            ("apply_template", "Apply template"),
                        ],
                        max_length=50,
                    ),
                ),
                ("key", models.CharField(max_length=100)),
                ("module_id", models.CharField(blank=True, max_length=64, null=True)),
                ("old_value", models.BooleanField(null=True)),
                ("new_value", models.BooleanField(null=True)),
                ("reason", models.TextField(blank=True, default="")),
                ("performed_at", models.DateTimeField()),
            ],
            options={
                "db_table": "ent_permission_change_audit",
                "ordering": ["-performed_at", "record_id"],
                "indexes": [
                    models.Index(
                        fields=["company_id", "performed_at"],
                        name="idx_audit_company_time",
                    ),
                    models.Index(
                        fields=["affected_user_id", "performed_at"],
                        name="idx_audit_user_time",
                    ),
                ],
            },
        ),
    ]
