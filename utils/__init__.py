"""Shared utilities for the Chanda dashboard."""

# Configuration
from utils.config import AppConfig, Config, PaymentMode

# HTTP utilities
from utils.http import RetryStrategy, SessionManager

# Output formatting
from utils.formatting import (
    MASKED_AMOUNT,
    collection_class,
    collection_label,
    collection_percent,
    format_inr,
    format_percent,
    payment_mode_badge,
    percent_diff_class,
    percent_diff_label,
    rounded_axis_max,
)

# Search and pagination
from utils.pagination import Page, filter_rows, paginate

# Form validation
from utils.validation import (
    ContributorUpdateForm,
    ExistingContributorDraft,
    ExpenseForm,
    LoginForm,
    NewContributorDraft,
    ValidationOutcome,
    validate_contribution,
    validate_form,
)

__all__ = [
    # Config
    "AppConfig",
    "Config",
    "PaymentMode",
    # HTTP
    "RetryStrategy",
    "SessionManager",
    # Formatting
    "MASKED_AMOUNT",
    "collection_class",
    "collection_label",
    "collection_percent",
    "format_inr",
    "format_percent",
    "payment_mode_badge",
    "percent_diff_class",
    "percent_diff_label",
    "rounded_axis_max",
    # Pagination
    "Page",
    "filter_rows",
    "paginate",
    # Validation
    "ContributorUpdateForm",
    "ExistingContributorDraft",
    "ExpenseForm",
    "LoginForm",
    "NewContributorDraft",
    "ValidationOutcome",
    "validate_contribution",
    "validate_form",
]
