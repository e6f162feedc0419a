"""
Configuration - Bot configuration and settings
"""

import os

# Bot Configuration
BOT_CONFIG = {
    'prefix': '!',
    'description': 'Sunny - a small voice channel music bot',
    'activity_name': 'music | !play',
    'default_volume': 0.5,
}

# Idle auto-leave: the bot leaves after max_idle_ticks consecutive empty checks
IDLE_CONFIG = {
    'check_interval': 60,  # seconds
    'max_idle_ticks': 5,
}

# Voice Configuration
VOICE_CONFIG = {
    'connect_timeout': 15.0,  # seconds, passed to discord.py
    'connect_wait': 20.0,  # seconds, hard upper bound around connect()
}

# YT-DLP Configuration
YTDL_CONFIG = {
    'format': 'bestaudio/best',
    'noplaylist': True,
    'nocheckcertificate': True,
    'ignoreerrors': False,
    'logtostderr': False,
    'quiet': True,
    'no_warnings': True,
    'source_address': '0.0.0.0',
}

# FFMPEG Configuration
FFMPEG_CONFIG = {
    'before_options': (
        '-reconnect 1 '
        '-reconnect_streamed 1 '
        '-reconnect_delay_max 5'
    ),
    'options': '-vn',
}

# Discord Configuration
DISCORD_CONFIG = {
    'token_env': 'DISCORD_TOKEN',
}

# Logging Configuration
LOGGING_CONFIG = {
    'level': 'INFO',
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'file': 'bot.log',
    'max_file_size': 10 * 1024 * 1024,  # 10MB
    'backup_count': 5,
}

# Chat replies
MESSAGES = {
    'joined': "Joined {channel}",
    'author_not_in_voice': "Not in a voice",
    'join_failed': "Failed to join channel",
    'left': "Left voice",
    'not_in_voice': "Not in a voice channel",
    'leave_failed': "Failed: {error}",
    'missing_url': "Must provide a URL to a video or audio",
    'invalid_url': "Must provide a valid URL",
    'source_error': "Error sourcing ffmpeg",
    'not_in_voice_to_play': "Not in a voice channel to play in",
    'track_added': "Added song to queue: position {position}",
    'track_skipped': "Song skipped: {remaining} in queue.",
    'queue_cleared': "Queue cleared.",
    'pong': "Pong!",
    'tracks_ended': "Tracks ended: {count}",
    'idle_left': "Left voice due to lack of listeners",
    'guild_only': "This command can only be used in a server",
    'command_error': "An error occurred: {error}",
}

def get_config_value(section: str, key: str, default=None):
    """Get a configuration value with fallback to default."""
    configs = {
        'bot': BOT_CONFIG,
        'idle': IDLE_CONFIG,
        'voice': VOICE_CONFIG,
        'ytdl': YTDL_CONFIG,
        'ffmpeg': FFMPEG_CONFIG,
        'discord': DISCORD_CONFIG,
        'logging': LOGGING_CONFIG,
    }

    return configs.get(section, {}).get(key, default)

def load_token() -> str:
    """Read the bot token from the environment at call time."""
    return os.getenv(DISCORD_CONFIG['token_env'], '').strip()

def validate_config():
    """Validate configuration values and environment variables."""
    errors = []
    warnings = []

    if not load_token():
        errors.append(f"{DISCORD_CONFIG['token_env']} environment variable is required!")

    if not 0 <= BOT_CONFIG['default_volume'] <= 1:
        warnings.append("Invalid default volume, using 0.5")
        BOT_CONFIG['default_volume'] = 0.5

    if IDLE_CONFIG['max_idle_ticks'] <= 0:
        errors.append("max_idle_ticks must be positive")

    return errors, warnings
