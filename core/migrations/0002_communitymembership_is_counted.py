from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="communitymembership",
            name="is_counted",
            field=models.BooleanField(
                default=True,
                help_text="Whether this membership is included in the community's member_count.",
            ),
        ),
    ]
