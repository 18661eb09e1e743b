import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("users", "0001_initial"),
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="user",
            name="admin_community",
            field=models.ForeignKey(
                blank=True,
                help_text="Community a community_admin was assigned to.",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="platform_admins",
                to="core.community",
            ),
        ),
    ]
