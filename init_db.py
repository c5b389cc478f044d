import os
import logging

import mysql.connector
from config import Config

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'schema.sql')


def split_statements(sql):
    """Split a schema script into single statements, dropping `--` comments."""
    lines = [line for line in sql.splitlines() if not line.strip().startswith('--')]
    return [stmt.strip() for stmt in '\n'.join(lines).split(';') if stmt.strip()]


def init_db(schema_path=SCHEMA_PATH):
    conn = mysql.connector.connect(
        host=Config.MYSQL_HOST,
        port=Config.MYSQL_PORT,
        user=Config.MYSQL_USER,
        password=Config.MYSQL_PASSWORD,
        database=Config.MYSQL_DATABASE
    )
    try:
        with conn.cursor() as cur:
            with open(schema_path, 'r') as f:
                # MySQL requires single statements
                statements = split_statements(f.read())
            for statement in statements:
                cur.execute(statement)
            conn.commit()
        logger.info("Applied %d schema statements from %s", len(statements), schema_path)
    finally:
        conn.close()


if __name__ == "__main__":
    logging.basicConfig(level=Config.LOG_LEVEL)
    init_db()
