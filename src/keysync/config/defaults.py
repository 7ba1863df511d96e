"""Starter .keysync.toml template."""

DEFAULT_TOML = """\
# keysync configuration
version = "1.0"

[remote]
base_url = "https://api.github.com/repos/<owner>/<repo>/contents"
# token = ""              # prefer KEYSYNC_TOKEN in the environment
branch = "build"          # tracked branch pointer
user_agent = "keysync"
# timeout = 30.0          # seconds; unset = no timeout

[host]
# identity = ""           # provider name this host answers to; default = hostname

[state]
checkpoint = "base_commit.txt"
lock_file = "keysync.lock"

[identity]
use_sudo = true
home_root = "/opt/watchdog/users"
skel = "/etc/skel"
admin_group = "sudo"      # falls back to admin_fallback when missing
admin_fallback = "wheel"
group_rc_loader = true

[logging]
level = "INFO"            # DEBUG | INFO | WARNING | ERROR
# file = "/var/log/keysync.log"
target = "update"

[output]
format = "terminal"       # terminal | json
show_summary = true
"""
