# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   auth_service     password, token and federated authentication
#   post_service     CRUD + keyword search + pagination for Post
#   comment_service  CRUD + pagination for Comment, scoped to a Post
#   user_service     signup and public profiles for User
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
