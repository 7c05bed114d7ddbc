from agentrelay.cli.main import main

main()
