"""Pure domain helpers - clock and calendar periods."""
