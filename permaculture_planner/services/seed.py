"""
Reference data seeding.

Loads species, learning content, badges and default model settings from
data/seed.yaml. Rows that already exist are left untouched, so seeding is
safe to run on every startup.
"""
import os
from typing import Any, Dict, Optional

import yaml

from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.db_operations import (
    encode_json,
    execute_sql_query,
    fetch_value,
    new_id,
    now_ts,
    transaction,
)

logger = get_logger(__name__)

SEED_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "seed.yaml")


def load_seed_data(path: Optional[str] = None) -> Dict[str, Any]:
    with open(path or SEED_PATH, "r") as f:
        return yaml.safe_load(f)


async def seed_database(path: Optional[str] = None) -> Dict[str, int]:
    """Insert missing reference rows and return how many of each kind were added."""
    data = load_seed_data(path)
    ts = now_ts()
    added = {"model_settings": 0, "species": 0, "topics": 0, "lessons": 0, "learning_paths": 0, "badges": 0}

    species_count = await fetch_value("SELECT COUNT(*) FROM species", default=0)

    async with transaction() as conn:
        for setting in data.get("model_settings", []):
            result = await execute_sql_query(conn, """
                INSERT INTO ai_model_settings (key, value, description, updated_at)
                VALUES (:key, :value, :description, :ts)
                ON CONFLICT (key) DO NOTHING
            """, {**setting, "ts": ts})
            added["model_settings"] += result.rowcount

        if species_count == 0:
            for species in data.get("species", []):
                await execute_sql_query(conn, """
                    INSERT INTO species (
                        id, common_name, scientific_name, layer, is_native, broad_regions,
                        min_hardiness_zone, max_hardiness_zone, mature_height_ft, mature_width_ft,
                        sun_requirements, water_requirements, permaculture_functions, description, created_at
                    ) VALUES (
                        :id, :common_name, :scientific_name, :layer, :is_native, :broad_regions,
                        :min_hardiness_zone, :max_hardiness_zone, :mature_height_ft, :mature_width_ft,
                        :sun_requirements, :water_requirements, :permaculture_functions, :description, :ts
                    )
                """, {
                    **species,
                    "id": new_id(),
                    "is_native": 1 if species.get("is_native") else 0,
                    "broad_regions": encode_json(species.get("broad_regions", [])),
                    "permaculture_functions": encode_json(species.get("permaculture_functions", [])),
                    "ts": ts,
                })
                added["species"] += 1

        for order, topic in enumerate(data.get("topics", [])):
            result = await execute_sql_query(conn, """
                INSERT INTO topics (id, slug, name, description, icon, display_order)
                VALUES (:id, :slug, :name, :description, :icon, :display_order)
                ON CONFLICT (slug) DO NOTHING
            """, {**topic, "id": new_id(), "display_order": order})
            added["topics"] += result.rowcount

        for order, lesson in enumerate(data.get("lessons", [])):
            result = await execute_sql_query(conn, """
                INSERT INTO lessons (
                    id, topic_id, slug, title, content, estimated_minutes, xp_reward,
                    difficulty, display_order, created_at, updated_at
                )
                SELECT :id, t.id, :slug, :title, :content, :estimated_minutes, :xp_reward,
                       :difficulty, :display_order, :ts, :ts
                FROM topics t WHERE t.slug = :topic
                ON CONFLICT (slug) DO NOTHING
            """, {
                **lesson,
                "id": new_id(),
                "content": encode_json(lesson.get("content")),
                "display_order": order,
                "ts": ts,
            })
            added["lessons"] += result.rowcount

        for order, path in enumerate(data.get("learning_paths", [])):
            path_id = new_id()
            result = await execute_sql_query(conn, """
                INSERT INTO learning_paths (id, slug, name, description, difficulty, icon, display_order, created_at)
                VALUES (:id, :slug, :name, :description, :difficulty, :icon, :display_order, :ts)
                ON CONFLICT (slug) DO NOTHING
            """, {
                "id": path_id,
                "slug": path["slug"],
                "name": path["name"],
                "description": path.get("description"),
                "difficulty": path.get("difficulty"),
                "icon": path.get("icon"),
                "display_order": order,
                "ts": ts,
            })
            if not result.rowcount:
                continue
            added["learning_paths"] += 1
            for index, lesson_slug in enumerate(path.get("lessons", [])):
                await execute_sql_query(conn, """
                    INSERT INTO path_lessons (id, path_id, lesson_id, order_index)
                    SELECT :id, :path_id, l.id, :order_index FROM lessons l WHERE l.slug = :slug
                    ON CONFLICT (path_id, lesson_id) DO NOTHING
                """, {"id": new_id(), "path_id": path_id, "order_index": index, "slug": lesson_slug})

        for badge in data.get("badges", []):
            result = await execute_sql_query(conn, """
                INSERT INTO badges (id, slug, name, description, icon, tier, criteria, created_at)
                VALUES (:id, :slug, :name, :description, :icon, :tier, :criteria, :ts)
                ON CONFLICT (slug) DO NOTHING
            """, {**badge, "id": new_id(), "criteria": encode_json(badge["criteria"]), "ts": ts})
            added["badges"] += result.rowcount

    logger.info("Seed complete: %s", added)
    return added
