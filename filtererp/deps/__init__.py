# Marks `filtererp.deps` as a package so `from filtererp.deps.auth import require_session` works.
