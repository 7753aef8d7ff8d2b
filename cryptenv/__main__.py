from cryptenv.cli.main import main

main()
