from vidtube.api.config import DevelopmentConfig, ProductionConfig, TestingConfig, get_config


def test_get_config_by_name():
    assert get_config("prod") is ProductionConfig
    assert get_config("Testing") is TestingConfig
    assert get_config("dev") is DevelopmentConfig


def test_session_cookies_secure_outside_development(app):
    assert ProductionConfig.COOKIE_SECURE is True
    assert app.config["COOKIE_SECURE"] is True
