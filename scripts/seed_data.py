import logging

from recipehub.config import settings
from recipehub.db import init_db, SessionLocal
from recipehub.seed import seed_all


def main():
    logging.basicConfig(level=settings.LOG_LEVEL)
    init_db()
    db = SessionLocal()
    try:
        seed_all(db, settings)
    finally:
        db.close()
    print('Seeding finished')


if __name__ == '__main__':
    main()
