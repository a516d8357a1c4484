# backend/wsgi.py
# Run with: python -m flask --app wsgi run   (or gunicorn wsgi:app)
from fenceflow import create_app
from fenceflow.services.bootstrap_service import init_database

app = create_app()

if app.config["SEED_ON_STARTUP"]:
    with app.app_context():
        init_database()

if __name__ == "__main__":
    app.run(debug=True)
