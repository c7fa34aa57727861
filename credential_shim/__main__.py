from credential_shim.main import run

run()
