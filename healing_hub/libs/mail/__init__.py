"""Email delivery integrations."""

from .mailchimp import JOURNEY_TAGS, MailchimpError, MailchimpService, get_mailchimp, set_mailchimp

__all__ = ["JOURNEY_TAGS", "MailchimpError", "MailchimpService", "get_mailchimp", "set_mailchimp"]
