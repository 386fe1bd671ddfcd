from flowx_migrate.cli.main import main

main()
