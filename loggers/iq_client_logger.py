from configuration import Configuration as Config
from loggers.logger_factory import build_logger

iq_client_logger = build_logger("iq_audit.iq", Config.iq_client_log_file_name)
