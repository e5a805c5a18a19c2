"""Schema v1 - Initial database schema.

This version includes tables for:
- Buyer and shop accounts
- Cart lines
- Customer-facing and seller-facing order ledgers
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'accounts',
            'columns': [
                {'name': 'id', 'type': 'BIGSERIAL', 'primary_key': True},
                {'name': 'email', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'password_hash', 'type': 'TEXT', 'nullable': False},
                {'name': 'account_type', 'type': 'TEXT', 'nullable': False, 'default': "'buyer'"},
                {'name': 'username', 'type': 'TEXT', 'default': "''"},
                {'name': 'name', 'type': 'TEXT', 'default': "''"},
                {'name': 'shop_name', 'type': 'TEXT'},
                {'name': 'mobile_number', 'type': 'TEXT'},
                {'name': 'date_of_birth', 'type': 'DATE'},
                {'name': 'country', 'type': 'TEXT', 'default': "''"},
                {'name': 'security_question', 'type': 'TEXT', 'default': "''"},
                {'name': 'security_answer', 'type': 'TEXT', 'default': "''"},
                {'name': 'street', 'type': 'TEXT', 'default': "''"},
                {'name': 'city', 'type': 'TEXT', 'default': "''"},
                {'name': 'state', 'type': 'TEXT', 'default': "''"},
                {'name': 'zipcode', 'type': 'TEXT', 'default': "''"},
                {'name': 'shipping_country', 'type': 'TEXT', 'default': "''"},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_accounts_type', 'columns': ['account_type']}
            ]
        },
        {
            'name': 'cart_lines',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'buyer_id', 'type': 'INT8', 'nullable': False},
                {'name': 'category_id', 'type': 'INT8'},
                {'name': 'product_id', 'type': 'INT8', 'nullable': False},
                {'name': 'quantity', 'type': 'INT8', 'nullable': False},
                {'name': 'seller_id', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['buyer_id'], 'references': 'accounts(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                # One line per product per buyer, enforced by the store
                {'name': 'idx_cart_lines_buyer_product', 'columns': ['buyer_id', 'product_id'], 'unique': True}
            ]
        },
        {
            'name': 'customer_orders',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'buyer_id', 'type': 'INT8', 'nullable': False},
                {'name': 'product_id', 'type': 'INT8', 'nullable': False},
                {'name': 'seller_id', 'type': 'INT8', 'nullable': False},
                {'name': 'quantity', 'type': 'INT8', 'nullable': False},
                {'name': 'product_name', 'type': 'TEXT', 'nullable': False},
                {'name': 'product_image', 'type': 'TEXT', 'nullable': False},
                {'name': 'product_price', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'PLACED'"},
                {'name': 'idempotency_key', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_customer_orders_buyer', 'columns': ['buyer_id']},
                {
                    'name': 'idx_customer_orders_idempotency',
                    'columns': ['buyer_id', 'idempotency_key'],
                    'unique': True,
                    'where': 'idempotency_key IS NOT NULL'
                }
            ]
        },
        {
            'name': 'seller_orders',
            'columns': [
                {'name': 'order_id', 'type': 'UUID', 'primary_key': True},
                {'name': 'seller_id', 'type': 'INT8', 'nullable': False},
                {'name': 'buyer_id', 'type': 'INT8', 'nullable': False},
                {'name': 'product_id', 'type': 'INT8', 'nullable': False},
                {'name': 'quantity', 'type': 'INT8', 'nullable': False},
                {'name': 'buyer_name', 'type': 'TEXT', 'nullable': False},
                {'name': 'buyer_mobile', 'type': 'TEXT', 'nullable': False},
                {'name': 'street', 'type': 'TEXT', 'nullable': False},
                {'name': 'city', 'type': 'TEXT', 'nullable': False},
                {'name': 'state', 'type': 'TEXT', 'default': "''"},
                {'name': 'zipcode', 'type': 'TEXT', 'default': "''"},
                {'name': 'country', 'type': 'TEXT', 'nullable': False},
                {'name': 'product_name', 'type': 'TEXT', 'nullable': False},
                {'name': 'product_image', 'type': 'TEXT', 'nullable': False},
                {'name': 'product_price', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'PLACED'"},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['order_id'], 'references': 'customer_orders(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_seller_orders_seller', 'columns': ['seller_id']}
            ]
        }
    ]
}
