"""HTTP boundary of kvgate: routes, dependencies and middleware."""
