import logging

from vertexmux.config import Settings, load_settings
from vertexmux.log import JsonFormatter, setup_logging


class TestLoadSettings:

    def test_defaults(self):
        assert load_settings({}) == Settings()

    def test_values(self):
        settings = load_settings({
            "GOOGLE_CLOUD_PROJECT_ID": "my-project",
            "VERTEX_AI_LOCATION": "europe-west4",
            "HOST": "0.0.0.0",
            "PORT": "8080",
            "LOG_LEVEL": "DEBUG",
            "LOG_FORMAT": "json",
            "CORS_ENABLED": "false",
            "ALLOWED_ORIGINS": "https://a.example, https://b.example",
            "STREAM_WORD_DELAY": "0",
            "STREAM_SPLIT_WORDS": "no",
            "TASK_CONTINUATION": "0",
        })
        assert settings.project_id == "my-project"
        assert settings.location == "europe-west4"
        assert settings.host == "0.0.0.0"
        assert settings.port == 8080
        assert settings.log_level == "debug"
        assert settings.log_format == "json"
        assert settings.cors_enabled is False
        assert settings.allowed_origins == ("https://a.example", "https://b.example")
        assert settings.stream_word_delay == 0.0
        assert settings.stream_split_words is False
        assert settings.task_continuation is False

    def test_malformed_values_fall_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="vertexmux.config"):
            settings = load_settings({
                "PORT": "eighty",
                "STREAM_WORD_DELAY": "-1",
                "CORS_ENABLED": "maybe",
                "LOG_FORMAT": "xml",
            })
        assert settings.port == 5001
        assert settings.stream_word_delay == 0.05
        assert settings.cors_enabled is True
        assert settings.log_format == "rich"
        assert len(caplog.records) == 4


class TestLogging:

    def test_json_formatter(self):
        record = logging.LogRecord("vertexmux.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        line = JsonFormatter().format(record)
        assert '"message": "hello world"' in line
        assert '"level": "info"' in line
        assert '"service": "vertexmux"' in line

    def test_setup_logging_level(self):
        root = logging.getLogger()
        previous_handlers, previous_level = root.handlers[:], root.level
        try:
            setup_logging(Settings(log_level="debug", log_format="json"))
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
        finally:
            root.handlers = previous_handlers
            root.setLevel(previous_level)
