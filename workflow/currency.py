"""
통화 식별자 도출

사람이 읽는 상품 코드 → 원장 통화 식별자 (순수 함수, 결정적).

- 3자 이하 ASCII 코드: 대문자 변환 후 'X'로 3자리까지 채움 (예: "ab" → "ABX")
- 그 외: 앞 20자의 UTF-8 바이트(최대 20바이트)를 hex 대문자로, '0'으로 40자리까지 채움

단방향 매핑이며 서로 다른 코드가 같은 식별자로 충돌할 수 있음
(앞 20자가 같은 긴 코드, 대소문자만 다른 짧은 코드 등).
유일성은 상품 코드 자체의 유일성으로만 보장.
"""

import string

from core.constants import LedgerConstants
from core.domain.errors import PreconditionError


# 표준 3자리 코드에 허용되는 문자
_STANDARD_CODE_CHARS = frozenset(string.ascii_letters + string.digits + "?!@#$%^&*<>(){}[]|")


def derive_currency_id(code: str) -> str:
    """상품 코드 → 통화 식별자

    Args:
        code: 상품 코드

    Returns:
        3자리 표준 코드 또는 40자리 hex 코드

    Raises:
        PreconditionError: 빈 코드 또는 네이티브 통화(XRP)와 같은 식별자

    사용 예시:
    ```python
    derive_currency_id("us")      # "USX"
    derive_currency_id("HALAL01") # "48414C414C303100000000000000000000000000"
    ```
    """
    if not code:
        raise PreconditionError("instrument code must not be empty")

    if len(code) <= LedgerConstants.STANDARD_CODE_LENGTH and set(code) <= _STANDARD_CODE_CHARS:
        currency_id = code.upper().ljust(LedgerConstants.STANDARD_CODE_LENGTH, "X")
        if currency_id == LedgerConstants.NATIVE_CURRENCY:
            raise PreconditionError(f"instrument code {code!r} maps to the native currency")
        return currency_id

    raw = code[:LedgerConstants.HEX_CODE_MAX_BYTES].encode("utf-8")[:LedgerConstants.HEX_CODE_MAX_BYTES]
    return raw.hex().upper().ljust(LedgerConstants.HEX_CODE_LENGTH, "0")


def is_standard_code(currency_id: str) -> bool:
    """3자리 표준 코드 여부"""
    return len(currency_id) == LedgerConstants.STANDARD_CODE_LENGTH
