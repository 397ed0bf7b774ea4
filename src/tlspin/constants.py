__module__ = "tlspin.constants"

MODE_CERTIFICATE = "certificate"
MODE_PUBLIC_KEY = "public_key"
PINNING_MODES = [MODE_CERTIFICATE, MODE_PUBLIC_KEY]

# readiness gate, the interval mirrors a 1ms usleep per attempt
READINESS_ATTEMPTS = 5
READINESS_INTERVAL = 0.001

PIN_FILE_SUFFIXES = [".cer", ".crt", ".der", ".pem", ".pub"]
PEM_CERTIFICATE_MARKER = b"-----BEGIN CERTIFICATE-----"
PEM_PUBLIC_KEY_MARKER = b"-----BEGIN PUBLIC KEY-----"

SERVER_AUTH_OID = "1.3.6.1.5.5.7.3.1"
ANY_EXTENDED_KEY_USAGE_OID = "2.5.29.37.0"

CLI_COLOR_PRIMARY = "cyan"
CLI_COLOR_PASS = "dark_sea_green2"
CLI_COLOR_FAIL = "light_coral"
CLI_COLOR_WARN = "khaki1"
CLI_COLOR_INFO = "deep_sky_blue2"
RESULT_LEVEL_PASS = "pass"
RESULT_LEVEL_FAIL = "fail"
RESULT_LEVEL_WARN = "warn"
RESULT_LEVEL_INFO = "info"
RESULT_LEVEL_INFO_DEFAULT = "INFO"
CLI_COLOR_MAP = {
    RESULT_LEVEL_PASS: CLI_COLOR_PASS,
    RESULT_LEVEL_FAIL: CLI_COLOR_FAIL,
    RESULT_LEVEL_WARN: CLI_COLOR_WARN,
    RESULT_LEVEL_INFO: CLI_COLOR_INFO,
}
CLI_ICON_MAP = {
    RESULT_LEVEL_PASS: ":white_heavy_check_mark:",
    RESULT_LEVEL_FAIL: ":cross_mark:",
    RESULT_LEVEL_WARN: ":bell:",
    RESULT_LEVEL_INFO: ":speech_balloon:",
}
DEFAULT_MAP = {
    RESULT_LEVEL_PASS: "PASS!",
    RESULT_LEVEL_FAIL: "FAIL!",
    RESULT_LEVEL_WARN: "WARN!",
    RESULT_LEVEL_INFO: RESULT_LEVEL_INFO_DEFAULT,
}
