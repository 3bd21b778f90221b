import logging

from milvus_binding.settings import COLORS, ColorfulFormatter, Config, init_log


class TestSettings:
    def test_defaults(self):
        assert Config.GRPC_URI == "tcp://localhost:19530"
        assert Config.MILVUS_LOG_LEVEL in ("DEBUG", "INFO", "WARNING", "ERROR")

    def test_colorful_formatter(self):
        record = logging.LogRecord("milvus_binding", logging.WARNING, __file__, 1, "hi", None, None)
        message = ColorfulFormatter("%(message)s").format(record)
        assert message == COLORS["WARNING"] + "hi" + COLORS["ENDC"]

    def test_init_log(self):
        try:
            init_log("ERROR")
            assert logging.getLogger("milvus_binding").level == logging.ERROR
        finally:
            init_log(Config.MILVUS_LOG_LEVEL)
