"""Add order status history."""

schema = {
    'version': 2,
    'tables': [
        {
            'name': 'order_status_history',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'order_id', 'type': 'UUID', 'nullable': False},
                {'name': 'from_status', 'type': 'TEXT'},
                {'name': 'to_status', 'type': 'TEXT', 'nullable': False},
                {'name': 'changed_by', 'type': 'INT8'},
                {'name': 'changed_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['order_id'], 'references': 'customer_orders(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_order_status_history_order', 'columns': ['order_id', 'changed_at']}
            ]
        }
    ],
    'migrations': [
        '''
        CREATE TABLE IF NOT EXISTS order_status_history (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES customer_orders(id) ON DELETE CASCADE,
            from_status TEXT,
            to_status TEXT NOT NULL,
            changed_by INT8,
            changed_at TIMESTAMP NOT NULL DEFAULT now()
        )
        ''',
        '''
        CREATE INDEX IF NOT EXISTS idx_order_status_history_order
        ON order_status_history(order_id, changed_at)
        '''
    ]
}
