"""
S-expression reader built on the 'sexpdata' library.
Parses program text into Python ASTs (nested lists of Symbols and atoms).
"""

import logging
from typing import Any, List

import sexpdata
from sexpdata import ExpectClosingBracket, ExpectNothing

from metaprob.system.errors import SexpSyntaxError

logger = logging.getLogger(__name__)


class SexpParser:
    """
    Parses S-expression strings into Python ASTs.

    The symbols 'true' and 'false' become Python booleans. 'nil' is left as a
    Symbol; the expression builder turns it into a None literal.
    """

    def parse_all(self, sexp_string: str) -> List[Any]:
        """
        Parses every top-level S-expression in a string.

        Args:
            sexp_string: The program text.

        Returns:
            The list of parsed top-level expressions.

        Raises:
            SexpSyntaxError: If the input is empty or has syntax errors.
            TypeError: If the input is not a string.
        """
        if not isinstance(sexp_string, str):
            raise TypeError("Input must be a string.")

        logger.debug(f"Attempting to parse S-expression string: '{sexp_string}'")
        stripped_string = sexp_string.strip()
        if not stripped_string:
            logger.error("S-expression parsing failed: Input string is empty or contains only whitespace.")
            raise SexpSyntaxError("Input string is empty or contains only whitespace.", sexp_string)

        try:
            forms = sexpdata.parse(stripped_string, nil=None, true="true", false="false")
        except ExpectClosingBracket as e:
            logger.error(f"S-expression syntax error (Unbalanced Parentheses): {e}")
            raise SexpSyntaxError("S-expression syntax error: Unbalanced parentheses or brackets.",
                                  sexp_string, error_details=str(e)) from e
        except ExpectNothing as e:
            logger.error(f"S-expression syntax error (Unexpected closing bracket): {e}")
            raise SexpSyntaxError("S-expression syntax error: Unexpected closing bracket.",
                                  sexp_string, error_details=str(e)) from e
        except ValueError as e:
            logger.error(f"S-expression syntax error (ValueError): {e}")
            raise SexpSyntaxError(f"S-expression syntax error: {e}", sexp_string, error_details=str(e)) from e

        if not forms:
            raise SexpSyntaxError("Input contains no S-expression.", sexp_string)
        logger.debug(f"Successfully parsed {len(forms)} top-level form(s): {forms!r}")
        return list(forms)

    def parse_string(self, sexp_string: str) -> Any:
        """
        Parses exactly one S-expression from a string.

        Raises:
            SexpSyntaxError: On syntax errors, empty input, or content after
                             the first expression.
        """
        forms = self.parse_all(sexp_string)
        if len(forms) > 1:
            logger.error(f"Unexpected content after main expression: {forms[1:]!r}")
            raise SexpSyntaxError("Unexpected content after the main expression.", sexp_string,
                                  error_details=f"Trailing content: {forms[1:]!r}")
        return forms[0]
