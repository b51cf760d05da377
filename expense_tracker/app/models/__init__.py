# Importing every model here lets string-based relationships resolve no
# matter which model module is imported first.
from expense_tracker.app.models import (  # noqa: F401
    expense,
    friend_link,
    invitation,
    shared_expense,
    split,
    user,
)
