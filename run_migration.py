import logging
import os
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("peerjournal.migrations")

MIGRATIONS_DIR = Path(__file__).resolve().parent / "supabase" / "migrations"


def list_migrations(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    # 文件名以时间戳开头，按字典序即执行顺序
    return sorted(p for p in directory.glob("*.sql") if p.is_file())


def run_migrations(dsn: str, files: list[Path]) -> int:
    """
    依次执行 SQL 迁移文件，返回成功执行的数量。

    中文注释: 迁移文件本身是幂等的（if not exists / on conflict），失败即中止，不继续执行后续文件。
    """
    conn = psycopg2.connect(dsn)
    conn.autocommit = True
    applied = 0
    try:
        with conn.cursor() as cur:
            for path in files:
                logger.info("Executing %s", path.name)
                cur.execute(path.read_text(encoding="utf-8"))
                applied += 1
    finally:
        conn.close()
    logger.info("Applied %d migration(s)", applied)
    return applied


def main() -> int:
    load_dotenv()
    dsn = (os.environ.get("DATABASE_URL") or "").strip()
    if not dsn:
        logger.error("DATABASE_URL is required")
        return 1
    files = list_migrations()
    if not files:
        logger.warning("No migrations found in %s", MIGRATIONS_DIR)
        return 0
    try:
        run_migrations(dsn, files)
    except psycopg2.Error as e:
        logger.error("Migration failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
