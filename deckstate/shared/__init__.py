"""Shared configuration, logging, models and helpers for the editor engine."""
