import pytest

from caisse.models.user import UserRole
from caisse.utils.permissions import can_admin, can_delete, can_write


@pytest.mark.parametrize(
    "role, write, delete, admin",
    [
        (UserRole.ADMIN, True, True, True),
        (UserRole.INSTRUCTEUR, True, False, False),
        (UserRole.OBSERVATEUR, False, False, False),
        ("instructeur", True, False, False),
    ],
)
def test_role_capabilities(role, write, delete, admin):
    assert can_write(role) is write
    assert can_delete(role) is delete
    assert can_admin(role) is admin


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        can_write("superuser")
