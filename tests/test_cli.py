from zenith_backend.models import Price, User


def test_create_admin(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", "--email", "Boss@Example.com", "--password", "pw-123456"])
    assert "Admin ready: boss@example.com" in result.output

    again = runner.invoke(args=["create-admin", "--email", "boss@example.com", "--password", "other"])
    assert "already exists" in again.output

    with app.app_context():
        user = User.query.filter_by(email="boss@example.com").first()
        assert user.is_admin is True
        assert user.check_password("pw-123456")


def test_seed_prices_skips_existing(app):
    runner = app.test_cli_runner()
    first = runner.invoke(args=["seed-prices", "--paper-size", "12x36"])
    # the Print only / user / 12x36 schedule already exists
    assert "Seeded 11 price entries." in first.output

    second = runner.invoke(args=["seed-prices", "--paper-size", "12x36"])
    assert "Seeded 0 price entries." in second.output

    with app.app_context():
        assert Price.query.filter_by(paper_size="12x36").count() == 12


def test_purge_otp(app):
    result = app.test_cli_runner().invoke(args=["purge-otp"])
    assert "Removed 0 expired OTP(s)." in result.output
