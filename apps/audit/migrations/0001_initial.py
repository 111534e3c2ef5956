import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='DeletionReport',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('deleted_user_id', models.BigIntegerField(db_index=True)),
                ('deleted_user_name', models.CharField(max_length=150)),
                ('admin_id', models.BigIntegerField(db_index=True)),
                ('admin_name', models.CharField(max_length=150)),
                ('reason', models.TextField()),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Deletion report',
                'verbose_name_plural': 'Deletion reports',
                'ordering': ['-timestamp'],
            },
        ),
    ]
