import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Ranking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dish_type', models.CharField(help_text='Dish-type bucket scoping the One-Best rule', max_length=50)),
                ('rank', models.PositiveSmallIntegerField(blank=True, help_text='Rank from 1 (best) to 5; empty when a taste status is set', null=True)),
                ('taste_status', models.CharField(blank=True, choices=[('ACCEPTABLE', 'Acceptable'), ('SECOND_CHANCE', 'Second chance'), ('DISSATISFIED', 'Dissatisfied')], help_text='Taste status; empty when a rank is set', max_length=20, null=True)),
                ('notes', models.TextField(help_text='What the user thought about the dish')),
                ('photo_refs', models.JSONField(default=list, help_text='References to the uploaded photos of the dish')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, help_text='When the dish was first ranked')),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now, help_text='When the ranking last changed')),
                ('dish', models.ForeignKey(help_text='The ranked dish', on_delete=django.db.models.deletion.PROTECT, related_name='rankings', to='catalog.dish')),
                ('restaurant', models.ForeignKey(help_text='Where the dish was eaten', on_delete=django.db.models.deletion.PROTECT, related_name='rankings', to='catalog.restaurant')),
                ('user', models.ForeignKey(help_text='The user who ranked the dish', on_delete=django.db.models.deletion.PROTECT, related_name='rankings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Ranking',
                'verbose_name_plural': 'Rankings',
                'ordering': ['-updated_at', '-id'],
                'indexes': [models.Index(fields=['user', '-updated_at'], name='ranking_user_updated_idx'), models.Index(fields=['dish', 'restaurant'], name='ranking_dish_restaurant_idx')],
                'constraints': [models.UniqueConstraint(fields=('user', 'dish', 'restaurant'), name='unique_user_dish_restaurant_ranking'), models.UniqueConstraint(condition=models.Q(('rank', 1)), fields=('user', 'restaurant', 'dish_type'), name='one_best_per_user_restaurant_dish_type'), models.CheckConstraint(condition=models.Q(models.Q(('rank__isnull', False), ('taste_status__isnull', True)), models.Q(('rank__isnull', True), ('taste_status__isnull', False)), _connector='OR'), name='ranking_rank_xor_taste_status'), models.CheckConstraint(condition=models.Q(('rank__isnull', True), models.Q(('rank__gte', 1), ('rank__lte', 5)), _connector='OR'), name='ranking_rank_range')],
            },
        ),
        migrations.CreateModel(
            name='DishStat',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('total_rankings', models.PositiveIntegerField(default=0)),
                ('total_restaurants_ranked', models.PositiveIntegerField(default=0)),
                ('first_ranked_at', models.DateTimeField(blank=True, null=True)),
                ('last_ranked_at', models.DateTimeField(blank=True, null=True)),
                ('dish', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='dish_stats', to='catalog.dish')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='dish_stats', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Dish statistic',
                'verbose_name_plural': 'Dish statistics',
                'constraints': [models.UniqueConstraint(fields=('user', 'dish'), name='unique_user_dish_stat')],
            },
        ),
        migrations.CreateModel(
            name='RankingHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dish_type', models.CharField(max_length=50)),
                ('previous_rank', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('new_rank', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('previous_taste_status', models.CharField(blank=True, choices=[('ACCEPTABLE', 'Acceptable'), ('SECOND_CHANCE', 'Second chance'), ('DISSATISFIED', 'Dissatisfied')], max_length=20, null=True)),
                ('new_taste_status', models.CharField(blank=True, choices=[('ACCEPTABLE', 'Acceptable'), ('SECOND_CHANCE', 'Second chance'), ('DISSATISFIED', 'Dissatisfied')], max_length=20, null=True)),
                ('notes', models.TextField(help_text='Notes at the time of the change')),
                ('photo_refs', models.JSONField(default=list, help_text='Photo references at the time of the change')),
                ('reason', models.CharField(choices=[('submitted', 'Submitted by the user'), ('demoted', 'Demoted by a new best dish')], default='submitted', max_length=10)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('dish', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ranking_history', to='catalog.dish')),
                ('ranking', models.ForeignKey(help_text='The ranking that changed', on_delete=django.db.models.deletion.PROTECT, related_name='history', to='rankings.ranking')),
                ('restaurant', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ranking_history', to='catalog.restaurant')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ranking_history', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Ranking history entry',
                'verbose_name_plural': 'Ranking history',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['ranking', 'created_at'], name='history_ranking_created_idx'), models.Index(fields=['user', 'reason'], name='history_user_reason_idx')],
            },
        ),
    ]
