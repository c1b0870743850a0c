from __future__ import annotations

import logging
import re
from typing import Any


# Free text: only the printed shapes (###-#######-# and #-##-#####-#), so plain ids and
# amounts in log lines stay readable.
_CEDULA_RE = re.compile(r"(?<![\d-])\d{3}-\d{7}-\d(?![\d-])")
_RNC_RE = re.compile(r"(?<![\d-])\d-\d{2}-\d{5}-\d(?![\d-])")
# Dedicated tax-id fields: bare digits as well.
_CEDULA_FIELD_RE = re.compile(r"(?<!\d)(?:\d{11}|\d{3}-\d{7}-\d)(?!\d)")
_RNC_FIELD_RE = re.compile(r"(?<!\d)(?:\d{9}|\d-\d{2}-\d{5}-\d)(?!\d)")


def mask_tax_ids(text: str, *, bare_digits: bool = False) -> str:
    """Replace Dominican cédula and RNC numbers with fixed tokens.

    No digit of a matched number survives. With `bare_digits` unformatted 11/9 digit
    runs are masked too; use it for values known to hold a tax id.
    """

    if not text:
        return text

    cedula_re, rnc_re = (_CEDULA_FIELD_RE, _RNC_FIELD_RE) if bare_digits else (_CEDULA_RE, _RNC_RE)
    text = cedula_re.sub("***CEDULA***", text)
    text = rnc_re.sub("***RNC***", text)
    return text


class MaskTaxIdFilter(logging.Filter):
    """Logging filter to mask cédula/RNC in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover
            message = str(getattr(record, "msg", ""))

        # Format once; the masked text replaces both msg and args.
        record.msg = mask_tax_ids(str(message))
        record.args = ()

        for key in ("cedula", "rnc", "cedula_rnc"):
            if hasattr(record, key):
                value: Any = getattr(record, key)
                if isinstance(value, str):
                    setattr(record, key, mask_tax_ids(value, bare_digits=True))

        return True
