import utils
from pathlib import Path

from models.audit_options import AuditOptions


class Configuration:
    # DIRECTORIES
    # IQ_AUDIT_HOME, or the directory the tool is run from
    root_dir = utils.resolve_work_dir()
    log_dir = Path(root_dir, "logs")
    cache_dir = Path(root_dir, "cache")

    # PROJECT SETUP
    utils.load_env_file(Path(root_dir, ".env"))

    # TOOL PROPERTIES
    tool_name = utils.env_str("IQ_AUDIT_TOOL_NAME", utils.DEFAULT_TOOL_NAME)
    tool_version = utils.env_str("IQ_AUDIT_TOOL_VERSION", utils.DEFAULT_TOOL_VERSION)
    proxies = {"http": "", "https": ""}

    # IQ SERVER PROPERTIES
    iq_server = utils.env_str("IQ_SERVER", "http://localhost:8070")
    iq_user = utils.env_str("IQ_USER")
    iq_token = utils.env_str("IQ_TOKEN")
    iq_application = utils.env_str("IQ_APPLICATION")
    iq_stage = utils.env_str("IQ_STAGE", "develop")
    iq_max_retries = utils.env_int("IQ_MAX_RETRIES", 300)
    iq_poll_interval = utils.env_float("IQ_POLL_INTERVAL", 1.0)
    iq_timeout = utils.env_int("IQ_TIMEOUT_SECONDS", 60)
    iq_verify_tls = utils.boolish(utils.env_str("IQ_VERIFY_TLS"), default=True)

    # OSS INDEX PROPERTIES
    oss_index_base_url = utils.env_str("OSS_INDEX_BASE_URL", "https://ossindex.sonatype.org")
    oss_index_user = utils.env_str("OSS_INDEX_USER")
    oss_index_token = utils.env_str("OSS_INDEX_TOKEN")
    oss_index_batch_size = 128
    oss_index_max_retries = 3
    db_cache_name = utils.env_str("IQ_AUDIT_CACHE_NAME", "iq-audit-cache")

    # FILE NAMES
    main_log_file_name = "main.log"
    iq_client_log_file_name = "iq_client.log"
    ossindex_log_file_name = "ossindex.log"

    @classmethod
    def audit_options(cls, **overrides) -> AuditOptions:
        """
        Build AuditOptions from the configured properties. Keyword overrides win
        over configured values (None overrides are ignored).
        """
        values = {
            "user": cls.iq_user,
            "token": cls.iq_token,
            "application": cls.iq_application,
            "server": cls.iq_server,
            "stage": cls.iq_stage,
            "max_retries": cls.iq_max_retries,
            "poll_interval": cls.iq_poll_interval,
            "tool": cls.tool_name,
            "version": cls.tool_version,
            "oss_index_user": cls.oss_index_user,
            "oss_index_token": cls.oss_index_token,
            "db_cache_name": cls.db_cache_name,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return AuditOptions(**values)
