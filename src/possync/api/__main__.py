from possync.api.main import run

run()
