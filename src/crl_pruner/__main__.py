from crl_pruner.main import main

main()
