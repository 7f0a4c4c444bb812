"""Centralized message/i18n system.

Primary language: RU. Optional EN toggle via config.language ('ru'|'en').
Messages may carry str.format placeholders; msg() fills them from kwargs.
"""

_RU = {
	"JOIN_VOICE_REQUIRED": "Вы должны быть в голосовом канале, чтобы воспроизводить музыку!",
	"INVALID_URL": "Пожалуйста, укажите действительный URL YouTube!",
	"METADATA_FAILED": "Не удалось загрузить видео. Попробуйте другой URL или позже.",
	"VOICE_CONNECT_FAIL": "Ошибка при подключении к голосовому каналу!",
	"NOW_PLAYING": "Сейчас играет: **{title}**",
	"ENQUEUED": "**{title}** добавлена в очередь! Позиция: {position}",
	"QUEUE_FULL": "Очередь заполнена (максимум {limit} треков)!",
	"PAUSED": "Музыка приостановлена!",
	"RESUMED": "Музыка возобновлена!",
	"NOTHING_PLAYING": "Сейчас ничего не играет!",
	"ALREADY_PLAYING": "Музыка уже играет!",
	"STOPPED": "Музыка остановлена, очередь очищена!",
	"QUEUE_EMPTY": "Очередь пуста!",
	"QUEUE_HEADER": "**Очередь:**",
	"QUEUE_MORE": "…и ещё {count}",
	"NOTHING_TO_SKIP": "Очередь пуста, нечего пропускать!",
	"SKIPPED": "Трек пропущен!",
	"QUEUE_FINISHED": "Очередь закончена, бот отключился.",
	"DISCONNECTED": "Бот отключился из-за разрыва соединения.",
	"STREAM_OPEN_FAILED": "Ошибка при загрузке трека **{title}**.",
	"PLAY_ERROR": "Произошла ошибка при воспроизведении трека.",
	"COMMAND_ERROR": "Проверьте правильность команды. Подробности записаны в лог.",
	"HELP": (
		"**Команды бота:**\n"
		"`{prefix}play <YouTube URL>` — Воспроизвести песню или добавить в очередь\n"
		"`{prefix}pause` — Приостановить воспроизведение\n"
		"`{prefix}resume` — Возобновить воспроизведение\n"
		"`{prefix}stop` — Остановить музыку и очистить очередь\n"
		"`{prefix}queue` — Показать текущую очередь\n"
		"`{prefix}skip` — Пропустить текущую песню"
	),
}

_EN = {
	"JOIN_VOICE_REQUIRED": "You must be in a voice channel to play music!",
	"INVALID_URL": "Please provide a valid YouTube URL!",
	"METADATA_FAILED": "Could not load the video. Try another URL or try again later.",
	"VOICE_CONNECT_FAIL": "Failed to connect to the voice channel!",
	"NOW_PLAYING": "Now playing: **{title}**",
	"ENQUEUED": "**{title}** added to queue, position {position}",
	"QUEUE_FULL": "Queue is full ({limit} tracks max)!",
	"PAUSED": "Music paused!",
	"RESUMED": "Music resumed!",
	"NOTHING_PLAYING": "Nothing is playing right now!",
	"ALREADY_PLAYING": "Music is already playing!",
	"STOPPED": "Music stopped, queue cleared!",
	"QUEUE_EMPTY": "Queue is empty!",
	"QUEUE_HEADER": "**Queue:**",
	"QUEUE_MORE": "…and {count} more",
	"NOTHING_TO_SKIP": "Queue is empty, nothing to skip!",
	"SKIPPED": "Track skipped!",
	"QUEUE_FINISHED": "Queue finished, leaving the voice channel.",
	"DISCONNECTED": "Left the voice channel because the connection was lost.",
	"STREAM_OPEN_FAILED": "Failed to load track **{title}**.",
	"PLAY_ERROR": "An error occurred while playing the track.",
	"COMMAND_ERROR": "Please check your command. Details were written to the log.",
	"HELP": (
		"**Bot commands:**\n"
		"`{prefix}play <YouTube URL>` — Play a song or add it to the queue\n"
		"`{prefix}pause` — Pause playback\n"
		"`{prefix}resume` — Resume playback\n"
		"`{prefix}stop` — Stop the music and clear the queue\n"
		"`{prefix}queue` — Show the current queue\n"
		"`{prefix}skip` — Skip the current song"
	),
}

_ACTIVE = _RU

def set_language(lang: str):
	global _ACTIVE
	if lang and lang.lower().startswith("en"):
		_ACTIVE = _EN
	else:
		_ACTIVE = _RU

def msg(key: str, **kwargs) -> str:
	text = _ACTIVE.get(key, _RU.get(key, key))
	if kwargs:
		try:
			return text.format(**kwargs)
		except (KeyError, IndexError, ValueError):
			return text
	return text
