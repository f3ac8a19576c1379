# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   post_service  — create / update / delete + cursor feed for Post
#   vote_service  — vote ledger and the post points aggregate
#   user_service  — registration, login and password reset for User
#
# All service functions accept an AsyncSession as their first argument.
# Multi-row writes commit through ``database.atomic``; everything else
# is committed by the ``get_db`` dependency at the end of the request.
