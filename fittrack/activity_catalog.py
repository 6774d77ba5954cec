from flask import current_app

from fittrack import db
from fittrack.models import Activity

_SEEDED_DATABASES: set[str] = set()

STANDARD_FIELDS = [
    {"name": "startedAt", "label": "Início", "type": "datetime-local", "required": True, "icon": "Calendar", "color": "text-green-500"},
    {"name": "duration", "label": "Duração", "type": "number", "required": True, "suffix": "min", "icon": "Clock", "color": "text-blue-500"},
    {"name": "calories", "label": "Calorias", "type": "number", "required": False, "suffix": "kcal", "icon": "Flame", "color": "text-orange-500"},
    {"name": "notes", "label": "Notas", "type": "textarea", "required": False, "icon": "StickyNote", "color": "text-muted-foreground"},
]

COMMON_ACTIVITIES = [
    {
        "name": "Tênis",
        "slug": "tennis",
        "icon": "Tennis",
        "color": "text-yellow-500 bg-yellow-500/10",
        "fields": [
            {
                "name": "type",
                "label": "Tipo",
                "type": "radio",
                "required": True,
                "options": [{"label": "Aula", "value": "aula"}, {"label": "Jogo", "value": "jogo"}],
            },
            *STANDARD_FIELDS,
        ],
    },
    {"name": "Natação", "slug": "swimming", "icon": "Waves", "color": "text-cyan-500 bg-cyan-500/10", "fields": STANDARD_FIELDS},
    {"name": "Corrida", "slug": "running", "icon": "Footprints", "color": "text-orange-500 bg-orange-500/10", "fields": STANDARD_FIELDS},
]

# Submitted workout fields that map to columns; everything else lands in details.
STANDARD_WORKOUT_KEYS = {"activityId", "duration", "calories", "startedAt", "notes", "weight"}


def seed_activities_if_needed(force: bool = False) -> int:
    database_uri = current_app.config["SQLALCHEMY_DATABASE_URI"]
    if database_uri in _SEEDED_DATABASES and not force:
        return 0

    changed = 0
    for row in COMMON_ACTIVITIES:
        existing = Activity.query.filter_by(slug=row["slug"]).first()
        if existing:
            # Keep seeded definitions fresh in case they are tuned in code.
            existing_changed = False
            for field_name in ("name", "icon", "color", "fields"):
                if getattr(existing, field_name) != row[field_name]:
                    setattr(existing, field_name, row[field_name])
                    existing_changed = True
            if existing_changed:
                db.session.add(existing)
                changed += 1
            continue

        db.session.add(Activity(**row))
        changed += 1

    if changed:
        db.session.commit()
    _SEEDED_DATABASES.add(database_uri)
    return changed


def activity_to_payload(activity: Activity) -> dict:
    return {
        "id": activity.id,
        "name": activity.name,
        "slug": activity.slug,
        "icon": activity.icon,
        "color": activity.color,
        "fields": activity.fields or [],
    }
