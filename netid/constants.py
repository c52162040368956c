from __future__ import annotations

import logging

LOGGER = logging.getLogger("netid.access")
APP_VERSION = "0.1.0"
SERVICE_NAME = "Net iD Access"

DEFAULT_BASE_PATH = "/authn/authentication/netid"
DEFAULT_SERVICE_HOSTNAME = "showroom.lab.secmaker.com"
DEFAULT_SERVICE_PORT = 443
DEFAULT_SERVICE_PATH = "/nias/ServiceServer.asmx"

CONNECT_TIMEOUT_SECONDS = 3.0
REQUEST_TIMEOUT_SECONDS = 10.0
