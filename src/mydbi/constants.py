"""Constants and static configuration for mydbi."""

# Application constants
PACKAGE_VERSION = "1.0.0"
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
MIN_ARGS = 1  # dsn

# Connection defaults
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3306
DEFAULT_CHARSET = "utf8mb4"
DEFAULT_CONNECT_TIMEOUT = 10.0  # seconds, applied by the driver at connect time

# Server version assumed until post-connect detection runs
DEFAULT_VERSION_INT = 55000
DEFAULT_VERSION_STRING = "5.50.0"
UTF8MB4_MIN_VERSION = 50503  # first version with utf8mb4 support

# Listing limits
MAX_TABLE_LIST = 250  # used when a caller asks for "the configured limit"
QUERY_PREVIEW_LENGTH = 100  # characters of SQL kept in logs and error text

# MySQL client/server error codes
AUTH_ERROR_CODES = frozenset({
    1044,  # ER_DBACCESS_DENIED_ERROR
    1045,  # ER_ACCESS_DENIED_ERROR
    1698,  # ER_ACCESS_DENIED_NO_PASSWORD_ERROR
    1251,  # ER_NOT_SUPPORTED_AUTH_MODE
})
CONNECTION_LOST_CODES = frozenset({
    2002,  # CR_CONNECTION_ERROR
    2003,  # CR_CONN_HOST_ERROR
    2006,  # CR_SERVER_GONE_ERROR
    2013,  # CR_SERVER_LOST
    2055,  # CR_SERVER_LOST_EXTENDED
})

# Amazon RDS installs the server below this directory
AMAZON_RDS_BASEDIR = "/rdsdbbin/"

# Schemas whose collation is known without asking the server
SYSTEM_SCHEMAS = frozenset({"information_schema", "performance_schema", "mysql", "sys"})
