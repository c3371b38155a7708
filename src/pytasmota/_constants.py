"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Broker transport
# ------------------------------------------------------------------

WS_PORT = 8083
WSS_PORT = 8884
WS_PATH = "/mqtt"
CLIENT_ID_PREFIX = "tasmota_web_"

KEEPALIVE_SECONDS = 60
CONNECT_TIMEOUT_SECONDS = 30.0
RECONNECT_DELAY_SECONDS = 5

QOS = 0

# ------------------------------------------------------------------
# Topic namespace
# ------------------------------------------------------------------

PREFIX_COMMAND = "cmnd"
PREFIX_STAT = "stat"
PREFIX_TELE = "tele"

LWT_ONLINE = "Online"

#: Suffixes subscribed for every device topic, as ``(prefix, suffix)``.
DEVICE_TOPIC_SUFFIXES: tuple[tuple[str, str], ...] = (
    (PREFIX_STAT, "POWER"),
    (PREFIX_STAT, "RESULT"),
    (PREFIX_STAT, "STATUS"),
    (PREFIX_STAT, "STATUS1"),
    (PREFIX_STAT, "STATUS2"),
    (PREFIX_STAT, "STATUS4"),
    (PREFIX_STAT, "STATUS5"),
    (PREFIX_STAT, "STATUS6"),
    (PREFIX_STAT, "STATUS7"),
    (PREFIX_STAT, "STATUS8"),
    (PREFIX_STAT, "STATUS11"),
    (PREFIX_TELE, "LWT"),
    (PREFIX_TELE, "STATE"),
    (PREFIX_TELE, "SENSOR"),
)


def device_topics(device_topic: str) -> list[str]:
    """Full topic names subscribed for *device_topic*."""
    return [f"{prefix}/{device_topic}/{suffix}" for prefix, suffix in DEVICE_TOPIC_SUFFIXES]


def command_topic(device_topic: str, command: str) -> str:
    return f"{PREFIX_COMMAND}/{device_topic}/{command}"


# ------------------------------------------------------------------
# Probe pacing (seconds). Firmware drops commands sent in a burst.
# ------------------------------------------------------------------

STATUS_PROBE_DELAY = 0.1
MODULE_PROBE_DELAY = 0.3
GPIO_PROBE_DELAY = 1.0

PAGE_FIRST_PROBE_DELAY = 0.1
PAGE_SECOND_PROBE_DELAY = 0.3

# ------------------------------------------------------------------
# Firmware vocabulary
# ------------------------------------------------------------------

TIMER_SLOTS = 16
STATUS_REPORT_MAX = 11
DAYS_MASK_LENGTH = 7
CONSOLE_HISTORY = 50

#: Well-known module ids for display.
MODULE_NAMES: dict[int, str] = {
    0: "Generic",
    1: "Sonoff Basic",
    2: "Sonoff RF",
    4: "Sonoff TH",
    5: "Sonoff Dual",
    6: "Sonoff Pow",
    7: "Sonoff 4CH",
    8: "Sonoff S2X",
    9: "Sonoff Touch",
    11: "Sonoff LED",
    18: "Generic",
    19: "Sonoff Dev",
    25: "Sonoff Bridge",
    26: "Sonoff B1",
    29: "Sonoff T1 1CH",
    30: "Sonoff T1 2CH",
    31: "Sonoff T1 3CH",
    41: "Sonoff S31",
    44: "Sonoff iFan02",
    71: "Sonoff iFan03",
}

#: Common GPIO function codes (ESP8266 legacy numbering).
GPIO_FUNCTION_NAMES: dict[int, str] = {
    0: "None",
    1: "Button",
    17: "DHT11",
    18: "DHT22",
    21: "Switch",
    32: "PWM",
    52: "Relay",
    56: "LED",
}
