"""Fishbowl status codes and their default messages.

The server usually supplies a statusMessage next to a failing statusCode; this
table is the fallback when it does not.
"""

from __future__ import annotations

from typing import Final

STATUS_SUCCESS: Final = 1000
STATUS_INACTIVITY: Final = 1010

STATUS_MESSAGES: Final[dict[int, str]] = {
    1000: "Success!",
    1001: "Unknown message received.",
    1002: "Connection to Fishbowl server was lost.",
    1003: "Some requests had errors.",
    1004: "There was an error with the database.",
    1009: "Fishbowl server has been shut down.",
    1010: "You have been logged off the server due to inactivity.",
    1011: "Unknown request function.",
    1012: "Unknown login token.",
    1100: "Unknown login error occurred.",
    1109: "This integrated application registration key is already in use.",
    1110: "A new integrated application has been added to Fishbowl Inventory. "
    "Please contact the Fishbowl Inventory administrator to approve this integrated application.",
    1111: "This integrated application registration key does not match.",
    1112: "This integrated application has not been approved by the Fishbowl Inventory administrator.",
    1120: "Invalid username or password.",
    1130: "Invalid ticket passed to Fishbowl Inventory server.",
    1131: "Invalid key value.",
    1140: "Initialization token is not correct type.",
    1150: "Request was invalid.",
    1160: "Response was invalid.",
    1162: "The login limit has been reached for the server's key.",
    1164: "Your API connection has been disabled.",
    1200: "Custom field is invalid.",
    1500: "The import was not properly formed.",
    1501: "That import type is not supported.",
    1502: "File not found.",
    1503: "That export type is not supported.",
    1504: "Unable to write to file.",
    1505: "The import data was of the wrong type.",
    1506: "The import data was missing a required field.",
    2000: "Was not able to find the part.",
    2001: "The part was invalid.",
    2100: "Was not able to find the product.",
    2101: "The product was invalid.",
    2300: "Was not able to find the tag.",
    2400: "Invalid UOM.",
    3000: "Customer not found.",
    3100: "Customer was invalid.",
    4000: "There was an error loading the purchase order.",
    4100: "There was an error loading the sales order.",
    4101: "The sales order number was not found.",
    4200: "There was an error loading the work order.",
    5000: "There was an error loading the vendor.",
    5100: "Vendor was invalid.",
    6000: "Account was invalid.",
    7000: "There was an error with the shipment.",
    8000: "Location was not found.",
    9000: "There was an error with the query.",
}

UNKNOWN_STATUS_MESSAGE: Final = "Unknown status code."


def status_message(code: int) -> str:
    """Default message for a status code."""
    return STATUS_MESSAGES.get(code, UNKNOWN_STATUS_MESSAGE)
