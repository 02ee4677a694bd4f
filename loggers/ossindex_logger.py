from configuration import Configuration as Config
from loggers.logger_factory import build_logger

ossindex_logger = build_logger("iq_audit.ossindex", Config.ossindex_log_file_name)
