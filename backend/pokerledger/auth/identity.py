"""Identity of the caller, as supplied by the external identity provider.

The ledger treats the user id as an opaque string; it only uses it to mark
which player row a signed-in participant owns.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    user_id: str
    display_name: str
