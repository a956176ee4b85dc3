from service_catproxy.app.main import main

main()
