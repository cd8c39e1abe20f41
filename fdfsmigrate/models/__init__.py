"""Data models for clusters, migrations, schedules, logs and transfers."""