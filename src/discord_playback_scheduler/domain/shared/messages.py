"""Centralized message constants for error messages, log lines, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"
    SNOWFLAKE_TOO_LARGE = "Discord snowflake ID exceeds maximum value (2^64)"

    # Source Locator Errors
    EMPTY_SOURCE = "Source cannot be empty"
    SOURCE_TOO_LONG = "Source exceeds {max_length} characters"
    SOURCE_CONTROL_CHARS = "Source contains control characters"
    SOURCE_UNSUPPORTED_SCHEME = "Unsupported URL scheme: {scheme}"
    SOURCE_MISSING_HOST = "URL has no host"

    # Session Errors
    NOTHING_PLAYING = "Nothing is playing"
    SESSION_TERMINATING = "Session for guild {guild_id} is shutting down"
    SESSION_STOPPED_BEFORE_CONNECT = "Playback was stopped before the voice connection was ready"

    # Connection Errors
    CONNECT_TIMEOUT = "Timed out after {timeout}s waiting for the voice connection"
    CONNECT_FAILED = "Voice handshake failed: {error}"
    CHANNEL_NOT_VOICE = "Channel {channel_id} is not a voice channel"
    MISSING_VOICE_PERMISSIONS = "Missing voice permissions: {missing}"

    # Audio/Stream Errors
    RESOLVER_NO_RESULT = "No playable result for source"
    RESOLVER_NO_STREAM_URL = "No stream URL found for {title}"
    RESOLVE_TIMEOUT = "Timed out after {timeout}s resolving audio"

    # Settings Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"

    # Bootstrapping Errors
    DISCORD_TOKEN_REQUIRED = "DISCORD_TOKEN environment variable is required"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."
    CONTAINER_NOT_FOUND = "Container not found on bot instance"


class LogTemplates:
    """Log message templates.

    Use these with logger.info(), logger.error(), etc. and pass values as
    parameters so formatting stays lazy.
    """

    # Session Lifecycle
    SESSION_CREATED = "Created playback session for guild %s"
    SESSION_ATTACHED = "Attached to existing session for guild %s (state=%s)"
    SESSION_DESTROYED = "Destroyed playback session for guild %s (reason=%s)"
    SESSION_STATE_CHANGED = "Guild %s: %s -> %s"
    SESSION_STALE_EVENT = "Ignoring stale %s event for guild %s (generation %s != %s)"
    SESSION_SHUTDOWN = "Stopping %d playback session(s)"

    # Voice Connection
    VOICE_CONNECTING = "Connecting to voice channel %s in guild %s"
    VOICE_CONNECTED = "Connected to voice channel %s in guild %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s after %ss"
    VOICE_CONNECT_FAILED = "Voice connection to channel %s failed: %s"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s (missing: %s)"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_RELEASE_FAILED = "Error releasing voice connection for guild %s: %r"
    VOICE_ABORT_FAILED = "Error cleaning up half-open voice client in guild %s: %r"
    VOICE_WAITING_FOR_RELEASE = "Waiting for previous voice connection in guild %s to close"
    VOICE_SELF_DEAFEN_FAILED = "Failed to self-deafen in guild %s: %r"

    # Playback
    PLAYBACK_STARTED = "Started playing '%s' in guild %s"
    PLAYBACK_STOPPED = "Stopped playback in guild %s (%d track(s) cleared)"
    PLAYBACK_PAUSED = "Paused playback in guild %s"
    PLAYBACK_RESUMED = "Resumed playback in guild %s"
    PLAYBACK_ERROR = "Playback error in guild %s: %s"
    PLAYBACK_STOP_AUDIO_FAILED = "Error stopping audio in guild %s: %r"

    # Tracks
    TRACK_LOADING = "Loading '%s' for guild %s"
    TRACK_ENDED = "Track ended in guild %s (error: %s)"
    TRACK_FINISHED = "Track finished: %s in guild %s"
    TRACK_SKIPPED = "Skipped track: %s in guild %s"
    TRACK_FAILED = "Dropping unplayable track '%s' in guild %s: %s"
    TRACK_FAILURE_CEILING = (
        "Guild %s hit %d consecutive unplayable tracks, abandoning %d queued track(s)"
    )

    # Queue
    QUEUE_ENQUEUED = "Enqueued '%s' at position %s in guild %s"
    QUEUE_EMPTY = "Queue empty in guild %s"

    # yt-dlp
    YTDLP_FAILED_EXTRACT_INFO = "Failed to extract info for %s"
    YTDLP_NO_STREAM_URL = "No stream URL for '%s'"
    YTDLP_RESOLVED = "Resolved '%s' to '%s'"
    CACHE_HIT_URL = "Cache hit for %s"
    CACHE_EXPIRED_CLEANED = "Cleaned %d expired cache entries"

    # Events
    ANNOUNCE_FAILED = "Failed to announce in channel %s: %r"

    # Bot Lifecycle
    BOT_STARTING = "Starting bot (environment=%s)"
    BOT_STARTING_RUN = "Running bot"
    BOT_STOPPED = "Bot stopped"
    BOT_KEYBOARD_INTERRUPT = "Interrupted by keyboard"
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SETUP = "Setting up bot"
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_CONTAINER_INITIALIZED = "Container initialized"
    BOT_CONTAINER_INIT_FAILED = "Container initialization failed: %s"
    BOT_COG_LOADED = "Loaded cog %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_READY = "Logged in as %s (id=%s)"
    BOT_CONNECTED_GUILDS = "Connected to %d guild(s)"
    BOT_SYNCED_GUILD = "Synced %d command(s) to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync commands to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %d global command(s)"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync global commands: %s"
    BOT_SYNC_ON_STARTUP_FAILED = "Command sync on startup failed: %s"
    BOT_SLASH_COMMAND_ERROR = "Slash command '%s' failed: %r"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"
    BOT_SHUTTING_DOWN = "Shutting down"
    BOT_SHUTDOWN_TIMEOUT = "Shutdown did not finish within %ss"
    BOT_CONTAINER_SHUTDOWN = "Container shut down"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error shutting down container: %s"
    BOT_SHUTDOWN_COMPLETE = "Shutdown complete"


class DiscordUIMessages:
    """User-facing strings sent by the command adapter."""

    ACTION_QUEUED = "➕ Queued **{source}** at position {position}."
    ACTION_STARTED = "🎶 Joined **{channel}**, starting **{source}**."
    ACTION_SKIPPED = "⏭️ Skipped: **{source}**"
    ACTION_STOPPED = "⏹️ Stopped playback and cleared {count} track(s)."
    ACTION_PAUSED = "⏸️ Paused playback."
    ACTION_RESUMED = "▶️ Resumed playback."

    ANNOUNCE_NOW_PLAYING = "🎶 Now playing: **{title}** (requested by <@{requester}>)"
    ANNOUNCE_TRACK_FAILED = "⚠️ Couldn't play **{source}**, moving on."
    ANNOUNCE_QUEUE_ABANDONED = "⚠️ {count} tracks in a row failed to play, stopping."
    ANNOUNCE_QUEUE_FINISHED = "✅ Queue finished, leaving the voice channel."

    NOW_PLAYING = "🎶 **{title}** [{duration}] ({state}), requested by <@{requester}>"
    NOW_LOADING = "⏳ Loading **{source}**, requested by <@{requester}>"
    QUEUE_HEADER = "**Queue** ({count} track(s))"
    QUEUE_LINE = "`{index}.` {source} — <@{requester}> {requested}"
    QUEUE_MORE = "…and {count} more"
    QUEUE_NOW_MARKER = "▶️"

    ERROR_INVALID_SOURCE = "❌ That doesn't look like something I can play: {reason}"
    ERROR_PERMISSION_DENIED = "❌ I need the **{missing}** permission(s) in that voice channel."
    ERROR_CONNECT_FAILED = "❌ I couldn't join your voice channel: {reason}"
    ERROR_OCCURRED = "❌ An error occurred: {error}"

    STATE_NOTHING_PLAYING = "Nothing is playing."
    STATE_QUEUE_EMPTY = "Queue is empty."
    STATE_SERVER_ONLY = "This command only works in a server."
    STATE_VERIFY_VOICE_FAILED = "Couldn't verify your voice state."
    STATE_NEED_TO_BE_IN_VOICE = "You need to be in a voice channel first."
