# GraphQL API package.
#
#   context  — per-request ForumContext (session, caller, loaders)
#   auth     — require_auth gate and session cookie helpers
#   types    — strawberry object / input types
#   posts    — posts, post, vote, createPost, updatePost, deletePost
#   users    — me, register, login, logout, forgotPassword, changePassword
#   schema   — the assembled schema with error masking
