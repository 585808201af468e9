import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ConsentLog',
            fields=[
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False)),
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('consent_hash', models.CharField(db_index=True, help_text='HMAC-SHA256 of the client consent identifier', max_length=64)),
                ('categories', models.JSONField(default=list, help_text='Granted category names, in submission order')),
                ('version_hash', models.CharField(blank=True, default='', help_text='Policy / banner text version in effect', max_length=64)),
                ('source', models.CharField(choices=[('accept', 'Accept'), ('change', 'Change')], default='accept', max_length=10)),
            ],
            options={
                'verbose_name': 'consent log entry',
                'verbose_name_plural': 'consent log',
                'db_table': 'consent_log',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ConsentOption',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('key', models.CharField(max_length=191, unique=True)),
                ('value', models.TextField(blank=True)),
            ],
            options={
                'db_table': 'consent_options',
            },
        ),
    ]
