# 浏览器冒烟测试：需要先手动运行 app.py（http://127.0.0.1:5000/）
import os
import time
import uuid

from selenium import webdriver
from selenium.webdriver.chrome.options import Options   #设置谷歌浏览器
from selenium.webdriver.common.by import By             #元素定位
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

BASE_URL = os.getenv('SMOKE_BASE_URL', 'http://127.0.0.1:5000')


#设置浏览器、启动浏览器
def start():
    options = Options()
    #禁用沙盒(增加兼容性)
    options.add_argument('--no-sandbox')
    if os.getenv('SMOKE_HEADLESS'):
        options.add_argument('--headless=new')
    driver = webdriver.Chrome(options=options)
    driver.implicitly_wait(5)
    return driver


def register_and_login(driver, email, password):
    driver.get(f'{BASE_URL}/register')
    driver.find_element(By.NAME, 'email').send_keys(email)
    driver.find_element(By.NAME, 'password').send_keys(password)
    driver.find_element(By.CSS_SELECTOR, 'button[type=submit]').click()

    driver.find_element(By.NAME, 'email').send_keys(email)
    driver.find_element(By.NAME, 'password').send_keys(password)
    driver.find_element(By.CSS_SELECTOR, 'button[type=submit]').click()
    assert 'התנתק' in driver.page_source, "断言失败：登录后没有出现登出按钮"
    print("✅ 验证通过: 注册并登录成功")


def add_score(driver):
    form = driver.find_element(By.ID, 'score-form')
    # date 输入框直接用 js 赋值，避免浏览器本地化格式的问题
    driver.execute_script("arguments[0].value = '2024-03-01';", form.find_element(By.NAME, 'date'))
    form.find_element(By.NAME, 'score').send_keys('125')
    form.find_element(By.CSS_SELECTOR, 'button[type=submit]').click()
    WebDriverWait(driver, 5).until(EC.text_to_be_present_in_element((By.TAG_NAME, 'body'), 'רמה נוכחית'))
    print("✅ 验证通过: 添加成绩后显示等级")


def add_word_and_flip(driver):
    driver.get(f'{BASE_URL}/vocab')
    form = driver.find_element(By.ID, 'word-form')
    form.find_element(By.NAME, 'english_word').send_keys('blue')
    form.find_element(By.NAME, 'hebrew_word').send_keys('כחול')
    form.find_element(By.CSS_SELECTOR, 'button[type=submit]').click()
    WebDriverWait(driver, 5).until(EC.presence_of_element_located((By.CSS_SELECTOR, '.flashcard')))

    card = driver.find_element(By.CSS_SELECTOR, '.flashcard')
    assert card.text == 'blue', f"断言失败：卡片正面应为英文，当前为 {card.text}"
    card.click()
    WebDriverWait(driver, 5).until(EC.text_to_be_present_in_element((By.CSS_SELECTOR, '.flashcard'), 'כחול'))
    print("✅ 验证通过: 单词卡翻面成功")

    #寻找文本内容包含 "blue" 的那一个<td>,/..跳到父元素<tr>，/td[last()]找到这行最后一个td按钮
    delete = driver.find_element(By.XPATH, "//td[contains(text(), 'blue')]/../td[last()]/button")
    driver.execute_script("arguments[0].scrollIntoView({block: 'center'});", delete)
    delete.click()
    driver.switch_to.alert.accept()
    time.sleep(2)
    assert 'blue' not in driver.page_source, "断言失败：删除单词后页面仍能找到 'blue'"
    print("✅ 验证通过：单词删除成功")


def main():
    driver = None
    try:
        driver = start()
        register_and_login(driver, f'smoke-{uuid.uuid4().hex[:8]}@example.com', 'smoke-pass')
        add_score(driver)
        add_word_and_flip(driver)
    except AssertionError as ae:
        print(f"\n× [断言异常]：{ae}")
        if driver is not None:
            driver.save_screenshot('error_assertion.png')
        raise
    finally:
        if driver is not None:
            driver.quit()
        print("测试脚本执行结束。")


if __name__ == '__main__':
    main()
