"""Rule engine mapping SMTP/NDR codes to canonical bounce pairs.

The rule table is built once from :mod:`..utils.bounce_rules` and never
mutated, so a single :class:`BounceClassifier` can be shared by any number
of threads.
"""

import logging
import re
import threading
from dataclasses import dataclass
from types import MappingProxyType

from .models import UNKNOWN_PAIR, BounceCode, BouncePair, BounceType
from ..utils import bounce_rules

logger = logging.getLogger(__name__)

_RE_SMTP_CODE = re.compile(r"^\d{3}$", re.ASCII)
_RE_NDR_CODE = re.compile(r"^(\d)\.(\d{1,3})\.(\d{1,3})$", re.ASCII)

_NOT_A_BOUNCE = BouncePair(BounceType.Unknown, BounceCode.NotABounce)

# First digit of an SMTP reply code -> default pair.
_SMTP_CLASS_DEFAULTS = {
    "1": UNKNOWN_PAIR,
    "2": _NOT_A_BOUNCE,
    "3": _NOT_A_BOUNCE,
    "4": BouncePair(BounceType.Soft, BounceCode.Unknown),
    "5": BouncePair(BounceType.Hard, BounceCode.Unknown),
}

_NDR_CLASS_TYPES = {
    "4": BounceType.Soft,
    "5": BounceType.Hard,
}

# How a candidate pair was resolved, strongest first.
EXACT, SUBJECT, CLASS_DEFAULT = "exact", "subject", "class"


@dataclass(frozen=True)
class RuleTable:
    """Read-only rule set; build with :func:`build_rule_table`."""

    smtp_rules: MappingProxyType
    ndr_rules: MappingProxyType
    ndr_subject_rules: MappingProxyType
    provider_rules: tuple


def to_pair(rule):
    """Turn a ``(type name, code name)`` registry entry into a :class:`BouncePair`.

    Raises
    ------
    KeyError
        If either name is not a member of its enum.
    """
    type_name, code_name = rule
    return BouncePair(BounceType[type_name], BounceCode[code_name])


def build_rule_table(extra_provider_rules=()):
    """Build an immutable rule table from the registry.

    Parameters
    ----------
    extra_provider_rules : iterable of (str, BouncePair)
        Additional vendor markers, checked before the built-in ones.
    """
    smtp = {code: to_pair(rule) for code, rule in bounce_rules.SMTP_RULES.items()}
    ndr = {code: to_pair(rule) for code, rule in bounce_rules.NDR_RULES.items()}
    subject = {key: BounceCode[name] for key, name in bounce_rules.NDR_SUBJECT_RULES.items()}
    provider = tuple(extra_provider_rules) + tuple(
        (marker, to_pair(rule)) for marker, rule in bounce_rules.PROVIDER_RULES
    )
    logger.debug(
        "Built rule table: %d SMTP, %d NDR, %d subject, %d provider rule(s)",
        len(smtp),
        len(ndr),
        len(subject),
        len(provider),
    )
    return RuleTable(
        smtp_rules=MappingProxyType(smtp),
        ndr_rules=MappingProxyType(ndr),
        ndr_subject_rules=MappingProxyType(subject),
        provider_rules=provider,
    )


_default_table = None
_default_table_lock = threading.Lock()


def default_rule_table():
    """Return the process-wide rule table, building it on first use.

    Concurrent first calls build the table at most once.
    """
    global _default_table  # pylint: disable=global-statement
    if _default_table is None:
        with _default_table_lock:
            if _default_table is None:
                _default_table = build_rule_table()
    return _default_table


class BounceClassifier:
    """Deterministic, total classification of extracted bounce codes."""

    def __init__(self, rule_table=None):
        self.rules = rule_table or default_rule_table()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, smtp_code=None, ndr_code=None, detail=""):
        """Resolve the codes of one bounce to a :class:`BouncePair`.

        A vendor marker in *detail* wins outright when an SMTP code is
        present.  With both codes, the NDR pair is used only when it comes
        from an exact NDR rule; otherwise the SMTP pair (exact rule or
        first-digit default) wins.  Never raises: unusable input resolves
        to ``Unknown/Unknown``.
        """
        smtp_code = (smtp_code or "").strip()
        ndr_code = (ndr_code or "").strip()
        has_smtp = bool(_RE_SMTP_CODE.match(smtp_code))
        has_ndr = bool(_RE_NDR_CODE.match(ndr_code))

        if has_smtp:
            provider_pair = self._match_provider(detail or "")
            if provider_pair is not None:
                return provider_pair

        if not has_smtp and not has_ndr:
            logger.debug("No usable code (smtp=%r, ndr=%r); Unknown", smtp_code, ndr_code)
            return UNKNOWN_PAIR
        if not has_ndr:
            return self._resolve_smtp(smtp_code)[0]
        if not has_smtp:
            return self._resolve_ndr(ndr_code)[0]

        smtp_pair, smtp_via = self._resolve_smtp(smtp_code)
        ndr_pair, ndr_via = self._resolve_ndr(ndr_code)
        if ndr_via == EXACT:
            return ndr_pair
        logger.debug("NDR %s has no exact rule (%s); using SMTP %s (%s)", ndr_code, ndr_via, smtp_code, smtp_via)
        return smtp_pair

    def convert_smtp_code(self, code):
        """Map a 3-digit SMTP reply code (int or str) to a pair."""
        code = str(code).strip()
        if not _RE_SMTP_CODE.match(code):
            return UNKNOWN_PAIR
        return self._resolve_smtp(code)[0]

    def convert_ndr_code(self, code):
        """Map an enhanced status code such as ``5.1.1`` to a pair."""
        code = (code or "").strip()
        if not _RE_NDR_CODE.match(code):
            return UNKNOWN_PAIR
        return self._resolve_ndr(code)[0]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _match_provider(self, detail):
        for marker, pair in self.rules.provider_rules:
            if marker in detail:
                logger.debug("Provider rule %r matched", marker)
                return pair
        return None

    def _resolve_smtp(self, code):
        pair = self.rules.smtp_rules.get(code)
        if pair is not None:
            return pair, EXACT
        return _SMTP_CLASS_DEFAULTS.get(code[0], UNKNOWN_PAIR), CLASS_DEFAULT

    def _resolve_ndr(self, code):
        pair = self.rules.ndr_rules.get(code)
        if pair is not None:
            return pair, EXACT

        klass, subject, detail = _RE_NDR_CODE.match(code).groups()
        if klass == "2":
            return _NOT_A_BOUNCE, CLASS_DEFAULT
        bounce_type = _NDR_CLASS_TYPES.get(klass)
        if bounce_type is None:
            return UNKNOWN_PAIR, CLASS_DEFAULT

        bounce_code = self.rules.ndr_subject_rules.get(f"{subject}.{detail}")
        if bounce_code is not None:
            return BouncePair(bounce_type, bounce_code), SUBJECT
        return BouncePair(bounce_type, BounceCode.Unknown), CLASS_DEFAULT


def classify(smtp_code=None, ndr_code=None, detail=""):
    """Classify with the shared default rule table."""
    return BounceClassifier().classify(smtp_code, ndr_code, detail)
