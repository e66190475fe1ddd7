"""Configuration subpackage - settings and pricing rule defaults."""
