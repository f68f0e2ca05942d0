# zenith_backend/wsgi.py
# gunicorn zenith_backend.wsgi:app
from zenith_backend.app import create_app

app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
