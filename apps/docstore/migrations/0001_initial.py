from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Document',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('collection', models.CharField(db_index=True, max_length=64)),
                ('doc_id', models.CharField(max_length=64)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('read_principals', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Document',
                'verbose_name_plural': 'Documents',
                'ordering': ['id'],
            },
        ),
        migrations.AddConstraint(
            model_name='document',
            constraint=models.UniqueConstraint(fields=('collection', 'doc_id'), name='uniq_collection_doc_id'),
        ),
        migrations.AddIndex(
            model_name='document',
            index=models.Index(fields=['collection', 'created_at'], name='docstore_coll_created_idx'),
        ),
    ]
