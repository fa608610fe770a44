"""Schema migrations for the AB-EAM database and the boot-time initializer."""

from __future__ import annotations

import logging

from abeam.migrations.manager import Migration, MigrationManager
from abeam.storage.database import Database

logger = logging.getLogger(__name__)

_INITIAL_SCHEMA_UP = """\
-- Users
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    email       TEXT UNIQUE NOT NULL,
    first_name  TEXT NOT NULL,
    last_name   TEXT NOT NULL,
    role        TEXT NOT NULL CHECK (role IN ('PRODUCT_PEOPLE', 'CLIENT_MANAGER')),
    status      TEXT NOT NULL DEFAULT 'PENDING' CHECK (status IN (
                    'PENDING', 'ACTIVE', 'INACTIVE'
                )),
    created_at  DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at  DATETIME DEFAULT CURRENT_TIMESTAMP
);

-- Programs
CREATE TABLE IF NOT EXISTS programs (
    id            TEXT PRIMARY KEY,
    title         TEXT NOT NULL,
    description   TEXT,
    creator_id    TEXT NOT NULL,
    stakeholders  TEXT,                 -- JSON array of user IDs
    start_date    DATETIME,
    end_date      DATETIME,
    status        TEXT NOT NULL DEFAULT 'PENDING' CHECK (status IN (
                      'PENDING', 'LIVE', 'STOPPED', 'ARCHIVED'
                  )),
    created_at    DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at    DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (creator_id) REFERENCES users (id) ON DELETE CASCADE
);

-- Contact users shared by enrollment requests and clients
CREATE TABLE IF NOT EXISTS contact_users (
    id          TEXT PRIMARY KEY,
    first_name  TEXT NOT NULL,
    last_name   TEXT NOT NULL,
    email       TEXT NOT NULL,
    created_at  DATETIME DEFAULT CURRENT_TIMESTAMP
);

-- Enrollment requests
CREATE TABLE IF NOT EXISTS enrollment_requests (
    id            TEXT PRIMARY KEY,
    program_id    TEXT NOT NULL,
    client_name   TEXT NOT NULL,
    account_ids   TEXT,                 -- JSON array of account IDs
    motivation    TEXT,
    status        TEXT NOT NULL DEFAULT 'PENDING' CHECK (status IN (
                      'PENDING', 'APPROVED', 'REJECTED'
                  )),
    requested_by  TEXT NOT NULL,
    created_at    DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at    DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (program_id) REFERENCES programs (id) ON DELETE CASCADE,
    FOREIGN KEY (requested_by) REFERENCES users (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS enrollment_request_contact_users (
    enrollment_request_id  TEXT NOT NULL,
    contact_user_id        TEXT NOT NULL,
    PRIMARY KEY (enrollment_request_id, contact_user_id),
    FOREIGN KEY (enrollment_request_id) REFERENCES enrollment_requests (id) ON DELETE CASCADE,
    FOREIGN KEY (contact_user_id) REFERENCES contact_users (id) ON DELETE CASCADE
);

-- Enrolled clients
CREATE TABLE IF NOT EXISTS clients (
    id                     TEXT PRIMARY KEY,
    program_id             TEXT NOT NULL,
    enrollment_request_id  TEXT NOT NULL,
    account_ids            TEXT,        -- JSON array of account IDs
    is_active              BOOLEAN NOT NULL DEFAULT 1,
    enrolled_at            DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at             DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (program_id) REFERENCES programs (id) ON DELETE CASCADE,
    FOREIGN KEY (enrollment_request_id) REFERENCES enrollment_requests (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS client_contact_users (
    client_id        TEXT NOT NULL,
    contact_user_id  TEXT NOT NULL,
    PRIMARY KEY (client_id, contact_user_id),
    FOREIGN KEY (client_id) REFERENCES clients (id) ON DELETE CASCADE,
    FOREIGN KEY (contact_user_id) REFERENCES contact_users (id) ON DELETE CASCADE
);

-- Indexes: users
CREATE INDEX IF NOT EXISTS idx_users_email ON users (email);
CREATE INDEX IF NOT EXISTS idx_users_role ON users (role);
CREATE INDEX IF NOT EXISTS idx_users_status ON users (status);

-- Indexes: programs
CREATE INDEX IF NOT EXISTS idx_programs_creator_id ON programs (creator_id);
CREATE INDEX IF NOT EXISTS idx_programs_status ON programs (status);
CREATE INDEX IF NOT EXISTS idx_programs_start_date ON programs (start_date);
CREATE INDEX IF NOT EXISTS idx_programs_end_date ON programs (end_date);

-- Indexes: enrollment_requests
CREATE INDEX IF NOT EXISTS idx_enrollment_requests_program_id ON enrollment_requests (program_id);
CREATE INDEX IF NOT EXISTS idx_enrollment_requests_requested_by ON enrollment_requests (requested_by);
CREATE INDEX IF NOT EXISTS idx_enrollment_requests_status ON enrollment_requests (status);

-- Indexes: clients
CREATE INDEX IF NOT EXISTS idx_clients_program_id ON clients (program_id);
CREATE INDEX IF NOT EXISTS idx_clients_enrollment_request_id ON clients (enrollment_request_id);
CREATE INDEX IF NOT EXISTS idx_clients_is_active ON clients (is_active);

-- Indexes: contact_users
CREATE INDEX IF NOT EXISTS idx_contact_users_email ON contact_users (email);
"""

_INITIAL_SCHEMA_DOWN = """\
DROP INDEX IF EXISTS idx_users_email;
DROP INDEX IF EXISTS idx_users_role;
DROP INDEX IF EXISTS idx_users_status;
DROP INDEX IF EXISTS idx_programs_creator_id;
DROP INDEX IF EXISTS idx_programs_status;
DROP INDEX IF EXISTS idx_programs_start_date;
DROP INDEX IF EXISTS idx_programs_end_date;
DROP INDEX IF EXISTS idx_enrollment_requests_program_id;
DROP INDEX IF EXISTS idx_enrollment_requests_requested_by;
DROP INDEX IF EXISTS idx_enrollment_requests_status;
DROP INDEX IF EXISTS idx_clients_program_id;
DROP INDEX IF EXISTS idx_clients_enrollment_request_id;
DROP INDEX IF EXISTS idx_clients_is_active;
DROP INDEX IF EXISTS idx_contact_users_email;

-- Children before parents
DROP TABLE IF EXISTS client_contact_users;
DROP TABLE IF EXISTS clients;
DROP TABLE IF EXISTS enrollment_request_contact_users;
DROP TABLE IF EXISTS enrollment_requests;
DROP TABLE IF EXISTS contact_users;
DROP TABLE IF EXISTS programs;
DROP TABLE IF EXISTS users;
"""

_REGISTRATION_REQUESTS_UP = """\
CREATE TABLE IF NOT EXISTS registration_requests (
    id                TEXT PRIMARY KEY,
    email             TEXT NOT NULL,
    first_name        TEXT NOT NULL,
    last_name         TEXT NOT NULL,
    requested_role    TEXT NOT NULL CHECK (requested_role IN (
                          'PRODUCT_PEOPLE', 'CLIENT_MANAGER'
                      )),
    status            TEXT NOT NULL DEFAULT 'PENDING' CHECK (status IN (
                          'PENDING', 'APPROVED', 'REJECTED'
                      )),
    approved_by       TEXT,             -- user who approved or rejected
    approved_at       DATETIME,
    rejection_reason  TEXT,
    created_at        DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at        DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (approved_by) REFERENCES users (id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_registration_requests_email ON registration_requests (email);
CREATE INDEX IF NOT EXISTS idx_registration_requests_status ON registration_requests (status);
"""

_REGISTRATION_REQUESTS_DOWN = """\
DROP INDEX IF EXISTS idx_registration_requests_email;
DROP INDEX IF EXISTS idx_registration_requests_status;
DROP TABLE IF EXISTS registration_requests;
"""

INITIAL_SCHEMA = Migration(
    version=1,
    name="initial_schema",
    up=_INITIAL_SCHEMA_UP,
    down=_INITIAL_SCHEMA_DOWN,
)

REGISTRATION_REQUESTS = Migration(
    version=2,
    name="registration_requests",
    up=_REGISTRATION_REQUESTS_UP,
    down=_REGISTRATION_REQUESTS_DOWN,
)

MIGRATIONS = (INITIAL_SCHEMA, REGISTRATION_REQUESTS)


def register_migrations(manager: MigrationManager) -> None:
    """Register every schema migration with the manager."""
    for migration in MIGRATIONS:
        manager.add_migration(migration)


def initialize_database(database: Database, manager: MigrationManager) -> None:
    """Connect, register migrations and bring the schema to the latest version.

    Any connection or migration error propagates; startup must not continue
    against a partially migrated schema.
    """
    database.connect()
    register_migrations(manager)
    manager.migrate()
    logger.info(
        "Database initialized at %s (schema version %d)",
        database.database_path,
        manager.current_version(),
    )
