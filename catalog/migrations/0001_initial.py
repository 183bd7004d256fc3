from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Dish',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Name of the dish', max_length=200)),
                ('slug', models.SlugField(help_text='Name used in URLs', max_length=100, unique=True)),
                ('dish_type', models.CharField(db_index=True, help_text='Dish-type bucket, e.g. noodle or dessert', max_length=50)),
                ('description', models.TextField(blank=True, help_text='Short description of the dish')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Dish',
                'verbose_name_plural': 'Dishes',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Restaurant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Name of the restaurant', max_length=200)),
                ('slug', models.SlugField(help_text='Name used in URLs', max_length=100, unique=True)),
                ('address', models.CharField(blank=True, help_text='Street address of the restaurant', max_length=300)),
                ('country_code', models.CharField(blank=True, help_text='ISO 3166-1 alpha-2 country code', max_length=2)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Restaurant',
                'verbose_name_plural': 'Restaurants',
                'ordering': ['name'],
            },
        ),
    ]
