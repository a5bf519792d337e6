import os

from propdesk import create_app, db
from propdesk.config import config_for, env_number

app = create_app(config_for(os.getenv("FLASK_ENV")))


def main():
    """Local server; deployments go through gunicorn.conf.py instead."""
    with app.app_context():
        db.create_all()  # no migrations needed for a throwaway dev database
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=env_number("PORT", 5000))


if __name__ == "__main__":
    main()
