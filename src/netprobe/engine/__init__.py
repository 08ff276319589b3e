"""Run orchestration: settings, dispatcher and controller."""
