"""User-facing strings for the customer reply flow."""

MESSAGES = {
    "maxpost": "You are probably trying to submit more data than this server accepts.",
    "bad_request": "The reply form could not be read. Please reload the page and try again.",
    "e_flood": "Too many replies in a short time. Please wait a few seconds and try again.",
    "no_trackid": "Internal error: No orig_track",
    "enter_message": "Please enter your message",
    "enter_valid_email": "Please enter a valid email address",
    "pcer": "Please correct the following errors:",
    "yhbb": "You have been temporarily locked out of the help desk. Please try again in {minutes} minutes.",
    "yhbr": "You have been temporarily blocked from replying. Please try again in {minutes} minutes.",
    "ticket_not_found": "Ticket not found! Please make sure you have entered the correct tracking ID!",
    "enmdb": "The email address you entered doesn't match the one in our database for this ticket ID.",
    "tislock2": "This ticket has been locked, you cannot post a reply.",
    "type_not_allowed": "File type of {filename} is not allowed.",
    "file_too_large": "The file {filename} is too large (maximum size is {max_size}).",
    "cannot_read_file": "Unable to read uploaded file {filename}.",
    "reply_submitted_success": "Your reply to this ticket has been successfully submitted",
}


def msg(key: str, **kwargs) -> str:
    """Return a formatted message by key."""
    text = MESSAGES[key]
    return text.format(**kwargs) if kwargs else text
