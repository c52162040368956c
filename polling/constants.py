from __future__ import annotations

import logging

LOGGER = logging.getLogger("netid.polling")

AUTH_API_ACCEPT_TYPE = "application/vnd.auth+json"
MAX_LAUNCH_COUNT = 20


class Endpoints:
    FAILED = "failed"
    LAUNCH = "launch"
    WAIT = "wait"
    CANCEL = "cancel"
    # alias of WAIT used by hypermedia clients
    POLLER = "poller"


class FormValueNames:
    USER_NAME = "userName"
    USE_SAME_DEVICE = "usesamedevice"
    RESTART_URL = "_restartUrl"
    CANCEL_URL = "_cancelUrl"
    ERROR_MESSAGE = "_errorMessage"
    RETURN_TO_URL = "_returnToUrl"
    FAILURE_URL = "_failureUrl"
    SERVICE_MESSAGE = "_serviceMessage"
    POLL_URL = "_pollUrl"
    POLLING_DONE = "_pollingDone"
    AUTOSTART_TOKEN = "_autostartToken"
    FORM_LAUNCH_COUNT = "_launchCount"
    QR_START_TOKEN = "_qrStartToken"
    QR_START_SECRET = "_qrStartSecret"
    INIT_TIME = "_initTime"
    QR_CODE = "_qrCode"
    ACTION = "_action"
    CSP_OVERRIDE_CHILD_SRC = "_cspChildSrc"
    KNOWN_USER_NAME = "_knownUserName"
    USERNAME = "_username"
    POST_BACK = "_postBack"
    AUTHN_COMPLETE = "authncomplete"


class EndUserMessageKeys:
    ACCESS_DENIED_RP = "access_denied_rp"
    INVALID_PARAMETERS = "invalid_parameters"
    UNKNOWN_PERSONAL_NUMBER = "unknown_personal_number"
    USER_BLOCKED = "user_blocked"
    START_APP = "start_app"
    CANCELLED = "cancelled"
    INTERNAL_ERROR = "internal_error"
    USER_CANCELLED = "user_cancelled"
    EXPIRED_TRANSACTION = "expired_transaction"
    USER_SIGN = "user_sign"
    CLIENT_ERROR = "client_error"
    OUTSTANDING_TRANSACTION = "outstanding_transaction"
    NO_APP = "no_app"
    NO_APP_TRY_OTHER_DEVICE = "no_app_try_other_device"
    CERTIFICATE_ERROR = "certificate_error"
    START_FAILED = "start_failed"
    UNKNOWN_ERROR = "unknown_error"
    GENERAL_ERROR = "validation.error.general"
    IN_PROGRESS = "inprogress"
    # keys not tied to a remote status
    CANCELLED_BY_USER = "error.user-cancelled"
    AUTHENTICATION_FAILED = "error.authentication.failed"
    USERNAME_INVALID = "username.invalid"
    USERNAME_REQUIRED = "validation.error.username.required"
    AUTOSTART_TOKEN_REQUIRED = "validation.error.autostarttoken.required"
    LAUNCH_COUNT_EXCEEDED = "validation.error.launchcount.range"


class SessionKeys:
    AUTHENTICATION_STATE = "POLLING_AUTHENTICATION_STATE"
    ERROR_MESSAGE = "POLLING_ERROR_MESSAGE"
    ORDER_REF = "POLLING_ORDER_REF"
    RESULT_ATTRIBUTES = "RESULT_ATTRIBUTES"
    RESULT_SUBJECT = "RESULT_SUBJECT"
    SESSION_LAUNCH_COUNT = "POLLING_LAUNCH_COUNT"
    AUTOSTART_TOKEN = "POLLING_AUTOSTART_TOKEN"
    QR_START_TOKEN = "POLLING_QR_START_TOKEN"
    QR_START_SECRET = "POLLING_QR_START_SECRET"
    USE_SAME_DEVICE = "POLLING_USE_SAME_DEVICE"
    INIT_TIME = "POLLING_INIT_TIME"

    ALL = (
        AUTHENTICATION_STATE,
        ERROR_MESSAGE,
        ORDER_REF,
        RESULT_ATTRIBUTES,
        RESULT_SUBJECT,
        SESSION_LAUNCH_COUNT,
        AUTOSTART_TOKEN,
        QR_START_TOKEN,
        QR_START_SECRET,
        USE_SAME_DEVICE,
        INIT_TIME,
    )

    # owned by the host, survives the flow
    AUTHENTICATED_SUBJECT = "AUTHENTICATED_SUBJECT"


def mask_personal_number(value: str | None) -> str:
    if not value:
        return ""
    if len(value) <= 4:
        return "XXXX"
    return value[:-4] + "XXXX"
