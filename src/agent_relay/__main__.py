from agent_relay.run import main

main()
