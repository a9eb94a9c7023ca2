from shop_service.main import main

main()
