"""
Database schema definitions.
Table creation, indexes, and structure management.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'backups',
        'audit_log',
        'reservation_status_history',
        'reservations',
        'rooms',
        'hotel_settings',
        'users',
        'hotels'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Tenants
    db.execute('''
        CREATE TABLE hotels (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            city TEXT,
            country TEXT,
            phone TEXT,
            email TEXT,
            description TEXT,
            timezone TEXT NOT NULL DEFAULT 'UTC',
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE hotel_settings (
            hotel_id INTEGER NOT NULL REFERENCES hotels(id),
            key TEXT NOT NULL,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (hotel_id, key)
        )
    ''')

    # 2. Users
    db.execute('''
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            full_name TEXT,
            phone TEXT,
            role TEXT NOT NULL CHECK (role IN
                ('super_admin', 'admin', 'manager', 'receptionist', 'client')),
            hotel_id INTEGER REFERENCES hotels(id),
            active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            last_login TEXT
        )
    ''')

    # 3. Rooms
    db.execute('''
        CREATE TABLE rooms (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            hotel_id INTEGER NOT NULL REFERENCES hotels(id),
            number TEXT,
            room_type TEXT NOT NULL,
            price REAL NOT NULL CHECK (price >= 0),
            capacity INTEGER NOT NULL CHECK (capacity >= 1),
            is_available INTEGER NOT NULL DEFAULT 1,
            description TEXT DEFAULT '',
            active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 4. Reservations
    db.execute('''
        CREATE TABLE reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            hotel_id INTEGER NOT NULL REFERENCES hotels(id),
            room_id INTEGER NOT NULL REFERENCES rooms(id),
            user_id INTEGER REFERENCES users(id),
            guest_name TEXT,
            guest_email TEXT,
            guest_phone TEXT,
            check_in TEXT NOT NULL,
            check_out TEXT NOT NULL,
            guests INTEGER NOT NULL DEFAULT 1 CHECK (guests >= 1),
            status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN
                ('pending', 'confirmed', 'checked_in', 'checked_out', 'cancelled')),
            special_requests TEXT,
            created_by INTEGER REFERENCES users(id),
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK (check_out > check_in)
        )
    ''')

    db.execute('''
        CREATE TABLE reservation_status_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL REFERENCES reservations(id) ON DELETE CASCADE,
            from_status TEXT,
            to_status TEXT NOT NULL,
            changed_by INTEGER,
            notes TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 5. Audit trail (append-only, no foreign keys so entries outlive their subjects)
    db.execute('''
        CREATE TABLE audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at TEXT NOT NULL,
            user_id INTEGER,
            user_name TEXT,
            action TEXT NOT NULL,
            hotel_id INTEGER,
            metadata TEXT
        )
    ''')

    # 6. Backups
    db.execute('''
        CREATE TABLE backups (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            backup_type TEXT NOT NULL CHECK (backup_type IN ('hotel', 'full')),
            hotel_id INTEGER,
            status TEXT NOT NULL DEFAULT 'queued' CHECK (status IN
                ('queued', 'running', 'success', 'failed')),
            size_bytes INTEGER,
            path TEXT,
            error TEXT,
            created_by INTEGER,
            created_at TEXT NOT NULL,
            started_at TEXT,
            finished_at TEXT
        )
    ''')


def create_indexes(db):
    """Create database indexes for common lookups."""
    indexes = [
        'CREATE INDEX IF NOT EXISTS idx_users_hotel ON users(hotel_id)',
        'CREATE INDEX IF NOT EXISTS idx_rooms_hotel ON rooms(hotel_id, active)',
        'CREATE INDEX IF NOT EXISTS idx_reservations_room_dates '
        'ON reservations(room_id, status, check_in, check_out)',
        'CREATE INDEX IF NOT EXISTS idx_reservations_hotel ON reservations(hotel_id, status)',
        'CREATE INDEX IF NOT EXISTS idx_status_history_reservation '
        'ON reservation_status_history(reservation_id)',
        'CREATE INDEX IF NOT EXISTS idx_audit_log_hotel_created ON audit_log(hotel_id, created_at)',
        'CREATE INDEX IF NOT EXISTS idx_audit_log_user ON audit_log(user_id)',
        'CREATE INDEX IF NOT EXISTS idx_backups_hotel ON backups(hotel_id, created_at)',
    ]

    for statement in indexes:
        db.execute(statement)
