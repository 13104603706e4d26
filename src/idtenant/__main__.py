from idtenant.app import main

main()
