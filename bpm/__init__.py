"""Business-process backend: applications, payments, timeline and notifications."""
