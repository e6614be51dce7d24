# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access:
#
#   blog_service          blog CRUD, listing, search, bookmarks
#   blog_formatter        one output shape + aggregate counts for blogs
#   taxonomy_service      category/tag find-or-create and linking
#   slug_service          slug derivation and collision suffixing
#   interaction_service   like/bookmark toggles and view recording
#   comment_service       threaded comments
#   user_service          users, profiles, follows
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
