import os
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

MIGRATIONS_DIR = Path(__file__).resolve().parent / "backend" / "migrations"


def migration_files() -> list[Path]:
    # 文件名以序号开头（0001_xxx.sql），按字典序执行
    return sorted(MIGRATIONS_DIR.glob("*.sql"))


def run_migrations() -> int:
    load_dotenv()
    # 中文注释: 连接串只从环境变量读取（Supabase Dashboard -> Database -> Connection string）
    dsn = (os.environ.get("DATABASE_URL") or "").strip()
    if not dsn:
        print("❌ DATABASE_URL is not set")
        return 1

    print("🚀 Connecting to database...")
    try:
        conn = psycopg2.connect(dsn)
    except psycopg2.Error as e:
        print(f"❌ Connection failed: {e}")
        return 1

    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            for path in migration_files():
                print(f"📄 Applying {path.name}...")
                cur.execute(path.read_text(encoding="utf-8"))
    except psycopg2.Error as e:
        print(f"❌ Migration failed: {e}")
        return 1
    finally:
        conn.close()

    print("✅ Database migration completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(run_migrations())
