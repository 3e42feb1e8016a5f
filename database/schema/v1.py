"""Schema v1 - Initial marketplace schema.

This version includes tables for:
- Ledger accounts and subscriptions
- Items (scripts) with safety scan state and engagement counters
- Engagement events, deduplicated per (item, user, event type)
- Follow graph, ratings, purchases and abuse reports
- Creator verification requests
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'accounts',
            'columns': [
                {'name': 'user_id', 'type': 'TEXT', 'primary_key': True},
                {'name': 'coins', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'total_earnings', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'followers', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'following', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'verified', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'trust_score', 'type': 'FLOAT8', 'nullable': False, 'default': '50'},
                {'name': 'bio', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_accounts_coins', 'expression': 'coins >= 0'},
                {'name': 'chk_accounts_follow_counts', 'expression': 'followers >= 0 AND following >= 0'}
            ]
        },
        {
            'name': 'subscriptions',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'tier', 'type': 'TEXT', 'nullable': False},
                {'name': 'expires_at', 'type': 'TIMESTAMPTZ', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'clock_timestamp()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'accounts(user_id)'}
            ],
            'indexes': [
                {'name': 'idx_subscriptions_user', 'columns': ['user_id', 'created_at']}
            ]
        },
        {
            'name': 'items',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'owner_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT', 'nullable': False},
                {'name': 'file_url', 'type': 'TEXT', 'nullable': False},
                {'name': 'file_name', 'type': 'TEXT', 'nullable': False},
                {'name': 'safety_state', 'type': 'TEXT', 'nullable': False, 'default': "'pending'"},
                {'name': 'has_structural_marker', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'safety_report', 'type': 'TEXT'},
                {'name': 'duration', 'type': 'TEXT', 'nullable': False, 'default': "'week'"},
                {'name': 'premium', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'expires_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'price', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'views', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'downloads', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_items_safety_state', 'expression': "safety_state IN ('pending', 'clean', 'infected')"},
                {'name': 'chk_items_duration', 'expression': "duration IN ('day', 'week', 'month')"},
                {'name': 'chk_items_premium', 'expression': "premium = (duration = 'month')"},
                {'name': 'chk_items_price', 'expression': 'price >= 0'}
            ],
            'indexes': [
                {'name': 'idx_items_owner', 'columns': ['owner_id']},
                {'name': 'idx_items_created', 'columns': ['created_at']},
                {'name': 'idx_items_expires', 'columns': ['expires_at']}
            ]
        },
        {
            'name': 'engagement_events',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'item_id', 'type': 'UUID', 'nullable': False},
                {'name': 'user_id', 'type': 'TEXT'},  # NULL for anonymous visitors
                {'name': 'event_type', 'type': 'TEXT', 'nullable': False},
                {'name': 'country', 'type': 'TEXT', 'nullable': False, 'default': "'Unknown'"},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_events_type', 'expression': "event_type IN ('view', 'download')"}
            ],
            'foreign_keys': [
                {'columns': ['item_id'], 'references': 'items(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                # NULL user_ids never conflict, so anonymous events are all kept
                {'name': 'idx_events_dedup', 'columns': ['item_id', 'user_id', 'event_type'], 'unique': True},
                {'name': 'idx_events_created', 'columns': ['created_at']}
            ]
        },
        {
            'name': 'follows',
            'columns': [
                {'name': 'follower_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'followed_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'primary_key': ['follower_id', 'followed_id'],
            'checks': [
                {'name': 'chk_follows_not_self', 'expression': 'follower_id <> followed_id'}
            ],
            'indexes': [
                {'name': 'idx_follows_followed', 'columns': ['followed_id']}
            ]
        },
        {
            'name': 'ratings',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'item_id', 'type': 'UUID', 'nullable': False},
                {'name': 'rater_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'score', 'type': 'INT8', 'nullable': False},
                {'name': 'comment', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_ratings_score', 'expression': 'score BETWEEN 1 AND 5'}
            ],
            'foreign_keys': [
                {'columns': ['item_id'], 'references': 'items(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_ratings_item_rater', 'columns': ['item_id', 'rater_id'], 'unique': True}
            ]
        },
        {
            'name': 'purchases',
            'columns': [
                {'name': 'item_id', 'type': 'UUID', 'nullable': False},
                {'name': 'buyer_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'price', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'primary_key': ['item_id', 'buyer_id'],
            'foreign_keys': [
                {'columns': ['item_id'], 'references': 'items(id)', 'on_delete': 'CASCADE'}
            ]
        },
        {
            'name': 'reports',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'item_id', 'type': 'UUID', 'nullable': False},
                {'name': 'reporter_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'reason', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'pending'"},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'reviewed_at', 'type': 'TIMESTAMPTZ'}
            ],
            'checks': [
                {'name': 'chk_reports_status', 'expression': "status IN ('pending', 'reviewed', 'valid', 'invalid')"}
            ],
            'foreign_keys': [
                {'columns': ['item_id'], 'references': 'items(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_reports_status', 'columns': ['status']}
            ]
        },
        {
            'name': 'verification_requests',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'pending'"},
                {'name': 'followers_snapshot', 'type': 'INT8', 'nullable': False},
                {'name': 'downloads_snapshot', 'type': 'INT8', 'nullable': False},
                {'name': 'views_snapshot', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'clock_timestamp()'},
                {'name': 'resolved_at', 'type': 'TIMESTAMPTZ'}
            ],
            'checks': [
                {'name': 'chk_verification_status', 'expression': "status IN ('pending', 'approved', 'rejected')"}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'accounts(user_id)'}
            ],
            'indexes': [
                {'name': 'idx_verification_user', 'columns': ['user_id', 'created_at']},
                {'name': 'idx_verification_one_pending', 'columns': ['user_id'],
                 'unique': True, 'where': "status = 'pending'"}
            ]
        }
    ]
}
