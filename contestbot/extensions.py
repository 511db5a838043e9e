from contestbot.tasks.reminders import ReminderScheduler

# One reminder scheduler per running service.
reminders = ReminderScheduler()
