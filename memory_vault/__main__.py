from memory_vault.main import run

run()
