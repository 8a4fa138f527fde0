# ==============================================================================
# UTILS PACKAGE
# ==============================================================================

from agricsmart.utils.helpers import (
    generate_certificate_id,
    generate_payment_reference,
    paginate_results,
    slugify,
    utc_now,
)

__all__ = [
    "generate_certificate_id",
    "generate_payment_reference",
    "paginate_results",
    "slugify",
    "utc_now",
]
