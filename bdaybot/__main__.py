from bdaybot.bot import run

run()
