from configuration import Configuration as Config
from loggers.logger_factory import build_logger

main_logger = build_logger("iq_audit.main", Config.main_log_file_name)
