# Generated manually

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Post',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('post_type', models.CharField(default='post', help_text='Content type: post, page, ...', max_length=50)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending', 'Pending Review'), ('private', 'Private'), ('publish', 'Published')], default='draft', max_length=20)),
                ('title', models.CharField(blank=True, max_length=500)),
                ('content', models.TextField(blank=True)),
                ('excerpt', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('author', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='posts', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'posts',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='posts_status_4d1c02_idx'),
                    models.Index(fields=['post_type', 'status'], name='posts_post_ty_8f3a51_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PostSnapshot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(blank=True, max_length=500)),
                ('content', models.TextField(blank=True)),
                ('excerpt', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('author', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='post_snapshots', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='snapshots', to='content.post')),
            ],
            options={
                'db_table': 'post_snapshots',
                'ordering': ['-modified_at', '-id'],
                'indexes': [
                    models.Index(fields=['parent', 'modified_at'], name='post_snapsh_parent__b7e2c9_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='EntityMeta',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entity_kind', models.CharField(choices=[('post', 'Post'), ('snapshot', 'Snapshot')], max_length=20)),
                ('entity_id', models.PositiveBigIntegerField()),
                ('meta_key', models.CharField(max_length=255)),
                ('meta_value', models.TextField(blank=True, default='')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'entity_meta',
                'indexes': [
                    models.Index(fields=['entity_kind', 'meta_key'], name='entity_meta_entity__5a9d13_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('entity_kind', 'entity_id', 'meta_key'), name='uniq_entity_meta_key'),
                ],
            },
        ),
    ]
