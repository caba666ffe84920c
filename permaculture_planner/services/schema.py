"""
Table definitions for the permaculture planner database.

Timestamps are unix seconds, ids are uuid4 hex strings and JSON columns are
stored as TEXT.
"""

TABLE_DEFINITIONS = {
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            image TEXT,
            role TEXT NOT NULL DEFAULT 'user',
            bio TEXT,
            location TEXT,
            website TEXT,
            social_links TEXT,
            interests TEXT,
            experience_level TEXT,
            climate_zone TEXT,
            profile_visibility TEXT NOT NULL DEFAULT 'public',
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "farms": """
        CREATE TABLE IF NOT EXISTS farms (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id),
            name TEXT NOT NULL,
            description TEXT,
            center_lat REAL NOT NULL,
            center_lng REAL NOT NULL,
            zoom_level INTEGER NOT NULL DEFAULT 15,
            acres REAL,
            climate_zone TEXT,
            rainfall_inches REAL,
            soil_type TEXT,
            is_public INTEGER NOT NULL DEFAULT 0,
            is_shop_enabled INTEGER NOT NULL DEFAULT 0,
            shop_headline TEXT,
            shop_banner_url TEXT,
            shop_policy TEXT,
            accepts_pickup INTEGER NOT NULL DEFAULT 0,
            accepts_shipping INTEGER NOT NULL DEFAULT 0,
            accepts_delivery INTEGER NOT NULL DEFAULT 0,
            delivery_radius_miles REAL,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "zones": """
        CREATE TABLE IF NOT EXISTS zones (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            name TEXT,
            zone_type TEXT NOT NULL DEFAULT 'other',
            geometry TEXT NOT NULL,
            properties TEXT,
            layer_id TEXT,
            catchment_properties TEXT,
            swale_properties TEXT,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "species": """
        CREATE TABLE IF NOT EXISTS species (
            id TEXT PRIMARY KEY,
            common_name TEXT NOT NULL,
            scientific_name TEXT,
            layer TEXT,
            is_native INTEGER NOT NULL DEFAULT 0,
            broad_regions TEXT,
            min_hardiness_zone TEXT,
            max_hardiness_zone TEXT,
            mature_height_ft REAL,
            mature_width_ft REAL,
            sun_requirements TEXT,
            water_requirements TEXT,
            permaculture_functions TEXT,
            description TEXT,
            created_at INTEGER NOT NULL
        )
    """,
    "plantings": """
        CREATE TABLE IF NOT EXISTS plantings (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            user_id TEXT NOT NULL REFERENCES users(id),
            species_id TEXT NOT NULL REFERENCES species(id),
            zone_id TEXT,
            layer_id TEXT,
            lat REAL NOT NULL,
            lng REAL NOT NULL,
            planted_year INTEGER,
            current_year INTEGER,
            name TEXT,
            notes TEXT,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "lines": """
        CREATE TABLE IF NOT EXISTS lines (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            user_id TEXT NOT NULL REFERENCES users(id),
            line_type TEXT NOT NULL DEFAULT 'custom',
            label TEXT,
            geometry TEXT NOT NULL,
            style TEXT,
            layer_id TEXT,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "design_layers": """
        CREATE TABLE IF NOT EXISTS design_layers (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            name TEXT NOT NULL,
            color TEXT,
            description TEXT,
            visible INTEGER NOT NULL DEFAULT 1,
            locked INTEGER NOT NULL DEFAULT 0,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER NOT NULL
        )
    """,
    "phases": """
        CREATE TABLE IF NOT EXISTS phases (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            name TEXT NOT NULL,
            description TEXT,
            start_year INTEGER,
            end_year INTEGER,
            color TEXT NOT NULL DEFAULT '#3b82f6',
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER NOT NULL
        )
    """,
    "guilds": """
        CREATE TABLE IF NOT EXISTS guilds (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            name TEXT NOT NULL,
            description TEXT,
            planting_ids TEXT,
            created_at INTEGER NOT NULL
        )
    """,
    "farmer_goals": """
        CREATE TABLE IF NOT EXISTS farmer_goals (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            user_id TEXT NOT NULL REFERENCES users(id),
            goal_category TEXT NOT NULL,
            description TEXT,
            priority INTEGER NOT NULL DEFAULT 3,
            targets TEXT,
            timeline TEXT NOT NULL DEFAULT 'medium',
            created_at INTEGER NOT NULL
        )
    """,
    "ai_conversations": """
        CREATE TABLE IF NOT EXISTS ai_conversations (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id),
            farm_id TEXT,
            title TEXT,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "ai_analyses": """
        CREATE TABLE IF NOT EXISTS ai_analyses (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id),
            conversation_id TEXT REFERENCES ai_conversations(id),
            farm_id TEXT,
            user_query TEXT NOT NULL,
            ai_response TEXT NOT NULL,
            model TEXT,
            created_at INTEGER NOT NULL
        )
    """,
    "farm_posts": """
        CREATE TABLE IF NOT EXISTS farm_posts (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            author_id TEXT NOT NULL REFERENCES users(id),
            post_type TEXT NOT NULL,
            content TEXT,
            media_urls TEXT,
            caption TEXT,
            tagged_zones TEXT,
            hashtags TEXT,
            ai_analysis_id TEXT,
            reaction_count INTEGER NOT NULL DEFAULT 0,
            comment_count INTEGER NOT NULL DEFAULT 0,
            view_count INTEGER NOT NULL DEFAULT 0,
            save_count INTEGER NOT NULL DEFAULT 0,
            is_published INTEGER NOT NULL DEFAULT 1,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "post_comments": """
        CREATE TABLE IF NOT EXISTS post_comments (
            id TEXT PRIMARY KEY,
            post_id TEXT NOT NULL REFERENCES farm_posts(id),
            author_id TEXT NOT NULL REFERENCES users(id),
            parent_comment_id TEXT,
            content TEXT NOT NULL,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "post_reactions": """
        CREATE TABLE IF NOT EXISTS post_reactions (
            id TEXT PRIMARY KEY,
            post_id TEXT NOT NULL REFERENCES farm_posts(id),
            user_id TEXT NOT NULL REFERENCES users(id),
            reaction_type TEXT NOT NULL,
            created_at INTEGER NOT NULL,
            UNIQUE (post_id, user_id)
        )
    """,
    "post_saves": """
        CREATE TABLE IF NOT EXISTS post_saves (
            id TEXT PRIMARY KEY,
            post_id TEXT NOT NULL REFERENCES farm_posts(id),
            user_id TEXT NOT NULL REFERENCES users(id),
            created_at INTEGER NOT NULL,
            UNIQUE (post_id, user_id)
        )
    """,
    "notifications": """
        CREATE TABLE IF NOT EXISTS notifications (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id),
            type TEXT NOT NULL,
            actor_id TEXT,
            post_id TEXT,
            comment_id TEXT,
            farm_id TEXT,
            content_preview TEXT,
            is_read INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER NOT NULL
        )
    """,
    "farm_follows": """
        CREATE TABLE IF NOT EXISTS farm_follows (
            id TEXT PRIMARY KEY,
            follower_id TEXT NOT NULL REFERENCES users(id),
            farm_id TEXT NOT NULL REFERENCES farms(id),
            created_at INTEGER NOT NULL,
            UNIQUE (follower_id, farm_id)
        )
    """,
    "user_follows": """
        CREATE TABLE IF NOT EXISTS user_follows (
            id TEXT PRIMARY KEY,
            follower_id TEXT NOT NULL REFERENCES users(id),
            followed_id TEXT NOT NULL REFERENCES users(id),
            created_at INTEGER NOT NULL,
            UNIQUE (follower_id, followed_id)
        )
    """,
    "learning_paths": """
        CREATE TABLE IF NOT EXISTS learning_paths (
            id TEXT PRIMARY KEY,
            slug TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            description TEXT,
            difficulty TEXT,
            icon TEXT,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER NOT NULL
        )
    """,
    "topics": """
        CREATE TABLE IF NOT EXISTS topics (
            id TEXT PRIMARY KEY,
            slug TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            description TEXT,
            icon TEXT,
            display_order INTEGER NOT NULL DEFAULT 0
        )
    """,
    "lessons": """
        CREATE TABLE IF NOT EXISTS lessons (
            id TEXT PRIMARY KEY,
            topic_id TEXT NOT NULL REFERENCES topics(id),
            slug TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            content TEXT,
            estimated_minutes INTEGER NOT NULL DEFAULT 5,
            xp_reward INTEGER NOT NULL DEFAULT 10,
            difficulty TEXT NOT NULL DEFAULT 'beginner',
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "path_lessons": """
        CREATE TABLE IF NOT EXISTS path_lessons (
            id TEXT PRIMARY KEY,
            path_id TEXT NOT NULL REFERENCES learning_paths(id),
            lesson_id TEXT NOT NULL REFERENCES lessons(id),
            order_index INTEGER NOT NULL DEFAULT 0,
            UNIQUE (path_id, lesson_id)
        )
    """,
    "lesson_completions": """
        CREATE TABLE IF NOT EXISTS lesson_completions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id),
            lesson_id TEXT NOT NULL REFERENCES lessons(id),
            xp_earned INTEGER NOT NULL DEFAULT 0,
            completed_at INTEGER NOT NULL,
            UNIQUE (user_id, lesson_id)
        )
    """,
    "user_progress": """
        CREATE TABLE IF NOT EXISTS user_progress (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL UNIQUE REFERENCES users(id),
            learning_path_id TEXT,
            total_xp INTEGER NOT NULL DEFAULT 0,
            current_level INTEGER NOT NULL DEFAULT 0,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_date TEXT,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "badges": """
        CREATE TABLE IF NOT EXISTS badges (
            id TEXT PRIMARY KEY,
            slug TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            description TEXT,
            icon TEXT,
            tier TEXT,
            criteria TEXT NOT NULL,
            created_at INTEGER NOT NULL
        )
    """,
    "user_badges": """
        CREATE TABLE IF NOT EXISTS user_badges (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id),
            badge_id TEXT NOT NULL REFERENCES badges(id),
            earned_at INTEGER NOT NULL,
            UNIQUE (user_id, badge_id)
        )
    """,
    "blog_posts": """
        CREATE TABLE IF NOT EXISTS blog_posts (
            id TEXT PRIMARY KEY,
            slug TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            excerpt TEXT,
            content TEXT NOT NULL,
            cover_image_url TEXT,
            author_id TEXT REFERENCES users(id),
            tags TEXT,
            is_published INTEGER NOT NULL DEFAULT 0,
            published_at INTEGER,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "shop_products": """
        CREATE TABLE IF NOT EXISTS shop_products (
            id TEXT PRIMARY KEY,
            farm_id TEXT NOT NULL REFERENCES farms(id),
            slug TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            category TEXT NOT NULL,
            price_cents INTEGER NOT NULL,
            quantity_in_stock INTEGER,
            unit TEXT,
            image_url TEXT,
            is_published INTEGER NOT NULL DEFAULT 1,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL,
            UNIQUE (farm_id, slug)
        )
    """,
    "knowledge_sources": """
        CREATE TABLE IF NOT EXISTS knowledge_sources (
            id TEXT PRIMARY KEY,
            filename TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            author TEXT,
            publication_year INTEGER,
            isbn TEXT,
            topics TEXT,
            file_path TEXT NOT NULL,
            file_hash TEXT NOT NULL,
            num_pages INTEGER,
            status TEXT NOT NULL DEFAULT 'pending',
            error_message TEXT,
            processed_at INTEGER,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        )
    """,
    "knowledge_chunks": """
        CREATE TABLE IF NOT EXISTS knowledge_chunks (
            id TEXT PRIMARY KEY,
            source_id TEXT NOT NULL REFERENCES knowledge_sources(id),
            page_number INTEGER NOT NULL,
            chunk_index INTEGER NOT NULL,
            content TEXT NOT NULL,
            chunk_hash TEXT NOT NULL,
            start_char INTEGER,
            end_char INTEGER,
            word_count INTEGER,
            embedding BLOB,
            embedding_model TEXT,
            token_count INTEGER,
            created_at INTEGER NOT NULL
        )
    """,
    "knowledge_processing_queue": """
        CREATE TABLE IF NOT EXISTS knowledge_processing_queue (
            id TEXT PRIMARY KEY,
            source_id TEXT NOT NULL REFERENCES knowledge_sources(id),
            status TEXT NOT NULL DEFAULT 'queued',
            priority INTEGER NOT NULL DEFAULT 50,
            attempts INTEGER NOT NULL DEFAULT 0,
            error_message TEXT,
            queued_at INTEGER NOT NULL,
            started_at INTEGER,
            completed_at INTEGER
        )
    """,
    "ai_model_settings": """
        CREATE TABLE IF NOT EXISTS ai_model_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            description TEXT,
            updated_by TEXT,
            updated_at INTEGER NOT NULL
        )
    """,
}

INDEX_DEFINITIONS = [
    "CREATE INDEX IF NOT EXISTS idx_farms_user ON farms(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_zones_farm ON zones(farm_id)",
    "CREATE INDEX IF NOT EXISTS idx_plantings_farm ON plantings(farm_id)",
    "CREATE INDEX IF NOT EXISTS idx_lines_farm ON lines(farm_id)",
    "CREATE INDEX IF NOT EXISTS idx_posts_farm ON farm_posts(farm_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_posts_created ON farm_posts(created_at, id)",
    "CREATE INDEX IF NOT EXISTS idx_comments_post ON post_comments(post_id)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, is_read)",
    "CREATE INDEX IF NOT EXISTS idx_chunks_source ON knowledge_chunks(source_id, page_number)",
    "CREATE INDEX IF NOT EXISTS idx_queue_status ON knowledge_processing_queue(status, priority)",
    "CREATE INDEX IF NOT EXISTS idx_analyses_conversation ON ai_analyses(conversation_id, created_at)",
]

# Deleted in this order before the farm row itself.
FARM_DEPENDENT_TABLES = [
    "plantings",
    "lines",
    "guilds",
    "zones",
    "design_layers",
    "phases",
    "farmer_goals",
    "shop_products",
    "farm_follows",
]
